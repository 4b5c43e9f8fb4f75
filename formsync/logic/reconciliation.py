"""Apply change-feed batches to stored responses.

A batch and the cursor that follows it are written in one transaction: if
anything fails the cursor stays put and the whole batch is fetched again.
Every effect is idempotent, so re-applying a batch is harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from sqlalchemy.engine import Connection

from formsync.db.base import transaction
from formsync.logic import repository_cursors, repository_responses
from formsync.logic.errors import StateConflict
from formsync.logic.events import RESPONSE_DELETED_EXTERNALLY, publish
from formsync.logic.response_state import transition
from formsync.models.change_feed import ChangeBatch, ChangePayload
from formsync.models.response import ResponseStatus

logger = logging.getLogger(__name__)


@dataclass
class BatchOutcome:
    payloads: int = 0
    touched: int = 0
    deleted: List[str] = field(default_factory=list)
    unchanged: int = 0
    cursor: Any = None


def _apply_destroyed(conn: Connection, record_id: str, now: str, outcome: BatchOutcome) -> None:
    response = repository_responses.find_by_external_record_id(record_id, conn)
    if response is None:
        return
    try:
        target = transition(response.status, ResponseStatus.DELETED_EXTERNALLY)
    except StateConflict as exc:
        logger.debug("reconcile_destroyed_noop response_id=%s reason=%s", response.id, exc)
        outcome.unchanged += 1
        return
    if repository_responses.set_status(response.id, response.status, target, now, conn):
        outcome.deleted.append(response.id)
    else:
        logger.debug("reconcile_destroyed_raced response_id=%s", response.id)
        outcome.unchanged += 1


def apply_payload(conn: Connection, table_id: str, payload: ChangePayload, now: str, outcome: BatchOutcome) -> None:
    """Apply one payload's changes for `table_id`; other tables are ignored.

    Changed records only refresh `updated_at`: the delta is keyed by external
    field id and may be partial, so answers are not rewritten from it.
    """
    changes = payload.changed_tables_by_id.get(table_id)
    if changes is None:
        return
    for record_id in changes.changed_records_by_id:
        response = repository_responses.find_by_external_record_id(record_id, conn)
        if response is not None:
            repository_responses.touch(response.id, now, conn)
            outcome.touched += 1
    for record_id in changes.destroyed_record_ids:
        _apply_destroyed(conn, record_id, now, outcome)


def apply_batch(
    subscription_id: str,
    table_id: str,
    batch: ChangeBatch,
    now: str,
    previous_cursor: Optional[Any] = None,
) -> BatchOutcome:
    """Apply `batch` in delivery order and advance the cursor atomically."""
    outcome = BatchOutcome(payloads=len(batch.payloads))
    next_cursor = batch.cursor if batch.cursor is not None else previous_cursor
    with transaction() as conn:
        for payload in batch.payloads:
            apply_payload(conn, table_id, payload, now, outcome)
        repository_cursors.save_cursor(subscription_id, next_cursor, now, conn)
    outcome.cursor = next_cursor
    for response_id in outcome.deleted:
        publish(RESPONSE_DELETED_EXTERNALLY, {"response_id": response_id, "subscription_id": subscription_id})
    logger.info(
        "reconcile_batch_applied subscription_id=%s payloads=%s touched=%s deleted=%s unchanged=%s",
        subscription_id,
        outcome.payloads,
        outcome.touched,
        len(outcome.deleted),
        outcome.unchanged,
    )
    return outcome


__all__ = ["BatchOutcome", "apply_payload", "apply_batch"]
