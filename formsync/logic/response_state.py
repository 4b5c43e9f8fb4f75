"""Response lifecycle transitions driven by reconciliation.

`active -> deletedExternally` is the only transition. A record that
reappears in the store is a new record with a new response; a deleted
response is never revived.
"""

from __future__ import annotations

from typing import Dict, FrozenSet
import logging

from formsync.logic.errors import StateConflict
from formsync.models.response import ResponseStatus

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    ResponseStatus.ACTIVE: frozenset({ResponseStatus.DELETED_EXTERNALLY}),
    ResponseStatus.DELETED_EXTERNALLY: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(current: str, target: str) -> str:
    """Return `target` if the move from `current` is allowed, else raise StateConflict."""
    if not can_transition(current, target):
        raise StateConflict(current, target)
    return target


def is_terminal(status: str) -> bool:
    return not TRANSITIONS.get(status)


__all__ = ["TRANSITIONS", "can_transition", "transition", "is_terminal"]
