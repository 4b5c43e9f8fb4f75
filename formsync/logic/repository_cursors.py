"""Per-subscription change-feed cursor store.

The cursor is the record store's own resumption token; it is stored as JSON
so integer and string cursors round-trip unchanged.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from formsync.db.base import transaction

logger = logging.getLogger(__name__)


def get_cursor(subscription_id: str, conn: Optional[Connection] = None) -> Optional[Any]:
    """Return the last persisted cursor, or None before the first batch."""
    state = get_cursor_state(subscription_id, conn)
    return state[0] if state else None


def get_cursor_state(subscription_id: str, conn: Optional[Connection] = None) -> Optional[Tuple[Any, str]]:
    with transaction(conn) as c:
        row = c.execute(
            sql_text("SELECT last_cursor, last_polled_at FROM subscription_cursor WHERE subscription_id = :sid"),
            {"sid": str(subscription_id)},
        ).fetchone()
    if row is None:
        return None
    raw, polled_at = row
    return (json.loads(raw) if raw is not None else None), polled_at


def save_cursor(subscription_id: str, cursor: Any, polled_at: str, conn: Optional[Connection] = None) -> None:
    params = {"sid": str(subscription_id), "cur": json.dumps(cursor), "ts": polled_at}
    with transaction(conn) as c:
        updated = c.execute(
            sql_text(
                "UPDATE subscription_cursor SET last_cursor = :cur, last_polled_at = :ts "
                "WHERE subscription_id = :sid"
            ),
            params,
        )
        if not updated.rowcount:
            c.execute(
                sql_text(
                    "INSERT INTO subscription_cursor (subscription_id, last_cursor, last_polled_at) "
                    "VALUES (:sid, :cur, :ts)"
                ),
                params,
            )


def delete_cursor(subscription_id: str) -> None:
    with transaction() as conn:
        conn.execute(
            sql_text("DELETE FROM subscription_cursor WHERE subscription_id = :sid"),
            {"sid": str(subscription_id)},
        )
    logger.info("subscription_cursor_deleted subscription_id=%s", subscription_id)


__all__ = ["get_cursor", "get_cursor_state", "save_cursor", "delete_cursor"]
