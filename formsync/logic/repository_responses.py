"""Response persistence.

Responses are created once per submission and afterwards only touched by
reconciliation (`status`, `updated_at`) or hard-deleted by the form owner.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from formsync.db.base import transaction
from formsync.logic.errors import NotFoundError
from formsync.logic.timestamps import utc_now_iso
from formsync.models.response import ResponseStatus, StoredResponse

logger = logging.getLogger(__name__)

_COLUMNS = "response_id, form_id, external_record_id, answers_json, status, created_at, updated_at"


def _row_to_response(row: Any) -> StoredResponse:
    rid, fid, ext_id, answers_json, status, created_at, updated_at = row
    return StoredResponse(
        id=rid,
        form_id=fid,
        external_record_id=ext_id,
        answers=json.loads(answers_json or "{}"),
        status=status,
        created_at=created_at,
        updated_at=updated_at,
    )


def create_response(form_id: str, external_record_id: str, answers: Dict[str, Any]) -> StoredResponse:
    response_id = str(uuid.uuid4())
    now = utc_now_iso()
    with transaction() as conn:
        conn.execute(
            sql_text(
                f"""
                INSERT INTO form_response ({_COLUMNS})
                VALUES (:rid, :fid, :ext, :answers, :status, :now, :now)
                """
            ),
            {
                "rid": response_id,
                "fid": str(form_id),
                "ext": str(external_record_id),
                "answers": json.dumps(answers),
                "status": ResponseStatus.ACTIVE,
                "now": now,
            },
        )
    logger.info(
        "response_created response_id=%s form_id=%s external_record_id=%s",
        response_id,
        form_id,
        external_record_id,
    )
    return StoredResponse(
        id=response_id,
        form_id=str(form_id),
        external_record_id=str(external_record_id),
        answers=answers,
        status=ResponseStatus.ACTIVE,
        created_at=now,
        updated_at=now,
    )


def get_response(response_id: str) -> StoredResponse:
    with transaction() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM form_response WHERE response_id = :rid"),
            {"rid": str(response_id)},
        ).fetchone()
    if row is None:
        raise NotFoundError("response", str(response_id))
    return _row_to_response(row)


def find_by_external_record_id(
    external_record_id: str, conn: Optional[Connection] = None
) -> Optional[StoredResponse]:
    with transaction(conn) as c:
        row = c.execute(
            sql_text(f"SELECT {_COLUMNS} FROM form_response WHERE external_record_id = :ext"),
            {"ext": str(external_record_id)},
        ).fetchone()
    return _row_to_response(row) if row is not None else None


def list_responses(form_id: str, status: Optional[str] = None) -> List[StoredResponse]:
    query = f"SELECT {_COLUMNS} FROM form_response WHERE form_id = :fid"
    params: Dict[str, Any] = {"fid": str(form_id)}
    if status is not None:
        query += " AND status = :status"
        params["status"] = status
    query += " ORDER BY created_at DESC"
    with transaction() as conn:
        rows = conn.execute(sql_text(query), params).fetchall()
    return [_row_to_response(r) for r in rows]


def referenced_question_keys(form_id: str) -> Set[str]:
    """Return every question key used by at least one stored response of the form."""
    keys: Set[str] = set()
    with transaction() as conn:
        rows = conn.execute(
            sql_text("SELECT answers_json FROM form_response WHERE form_id = :fid"),
            {"fid": str(form_id)},
        ).fetchall()
    for (answers_json,) in rows:
        keys.update(json.loads(answers_json or "{}").keys())
    return keys


def touch(response_id: str, updated_at: str, conn: Optional[Connection] = None) -> None:
    with transaction(conn) as c:
        c.execute(
            sql_text("UPDATE form_response SET updated_at = :ts WHERE response_id = :rid"),
            {"ts": updated_at, "rid": str(response_id)},
        )


def set_status(
    response_id: str,
    expected_status: str,
    new_status: str,
    updated_at: str,
    conn: Optional[Connection] = None,
) -> bool:
    """Compare-and-set the status; return False when the row had moved on already."""
    with transaction(conn) as c:
        result = c.execute(
            sql_text(
                """
                UPDATE form_response SET status = :new, updated_at = :ts
                WHERE response_id = :rid AND status = :expected
                """
            ),
            {"new": new_status, "ts": updated_at, "rid": str(response_id), "expected": expected_status},
        )
    return (result.rowcount or 0) > 0


def delete_response(form_id: str, response_id: str) -> None:
    with transaction() as conn:
        result = conn.execute(
            sql_text("DELETE FROM form_response WHERE response_id = :rid AND form_id = :fid"),
            {"rid": str(response_id), "fid": str(form_id)},
        )
    if not result.rowcount:
        raise NotFoundError("response", str(response_id))
    logger.info("response_deleted response_id=%s form_id=%s", response_id, form_id)


__all__ = [
    "create_response",
    "get_response",
    "find_by_external_record_id",
    "list_responses",
    "referenced_question_keys",
    "touch",
    "set_status",
    "delete_response",
]
