"""Domain event constants and publisher.

Defines event type constants and a simple publish() callable used by the
submission, profile and sign-in/out flows.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

SESSION_CREATED = "session.created"
WELCOME_SEEN = "profile.welcome_seen"
USER_SIGNED_IN = "auth.signed_in"
USER_SIGNED_OUT = "auth.signed_out"

EVENT_BUFFER_SIZE = 1000

# In-memory buffer for domain events (test-only visibility); oldest dropped first
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_SIZE)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    """Publish a domain event.

    Events are logged for observability and buffered in-memory for tests.
    """
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "SESSION_CREATED",
    "WELCOME_SEEN",
    "USER_SIGNED_IN",
    "USER_SIGNED_OUT",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
    "EVENT_BUFFER_SIZE",
]
