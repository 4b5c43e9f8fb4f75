"""Domain event constants and publisher.

Events are logged for observability and buffered in-process so tests and the
debug surface can observe what reconciliation and submission did.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Deque, Dict, List
import logging

logger = logging.getLogger(__name__)

RESPONSE_SUBMITTED = "response.submitted"
RESPONSE_DELETED_EXTERNALLY = "response.deleted_externally"
CHANGE_BATCH_APPLIED = "subscription.batch_applied"
CHANGE_BATCH_FAILED = "subscription.batch_failed"

_BUFFER_LIMIT = 1000
EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=_BUFFER_LIMIT)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return buffered domain events; optionally clear the buffer."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "RESPONSE_SUBMITTED",
    "RESPONSE_DELETED_EXTERNALLY",
    "CHANGE_BATCH_APPLIED",
    "CHANGE_BATCH_FAILED",
    "publish",
    "get_buffered_events",
    "EVENT_BUFFER",
]
