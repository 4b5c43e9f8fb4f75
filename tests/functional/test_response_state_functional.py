"""Functional tests for the response lifecycle state machine."""

from __future__ import annotations

import pytest

from formsync.logic.errors import StateConflict
from formsync.logic.response_state import can_transition, is_terminal, transition
from formsync.models.response import ResponseStatus

ACTIVE = ResponseStatus.ACTIVE
DELETED = ResponseStatus.DELETED_EXTERNALLY


def test_active_can_be_deleted_externally():
    assert can_transition(ACTIVE, DELETED)
    assert transition(ACTIVE, DELETED) == DELETED


def test_deleted_is_terminal():
    assert is_terminal(DELETED)
    assert not is_terminal(ACTIVE)


@pytest.mark.parametrize("current,target", [(DELETED, DELETED), (DELETED, ACTIVE), (ACTIVE, ACTIVE)])
def test_disallowed_transitions_raise_state_conflict(current, target):
    with pytest.raises(StateConflict):
        transition(current, target)
