"""Pydantic models for the user profile endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictBool


class ProfileResponse(BaseModel):
    id: str
    has_seen_welcome: bool
    created_at: str


class UpdateProfileCommand(BaseModel):
    # PATCH /api/profile accepts exactly this one field
    model_config = ConfigDict(extra="forbid")

    has_seen_welcome: StrictBool


__all__ = ["ProfileResponse", "UpdateProfileCommand"]
