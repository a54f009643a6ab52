"""UTC timestamp helpers.

Timestamps are persisted as RFC3339 strings with microseconds and a trailing
'Z' so that lexical order in the store matches chronological order.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


__all__ = ["utc_now", "to_rfc3339"]
