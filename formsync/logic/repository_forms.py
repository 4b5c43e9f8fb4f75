"""Form and question persistence.

Questions are stored one row per question with an explicit `question_order`;
edits replace the whole ordered list in one transaction.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from formsync.db.base import transaction
from formsync.logic.errors import NotFoundError
from formsync.logic.timestamps import utc_now_iso
from formsync.models.form import Form, FormDefinition, Question, Rule

logger = logging.getLogger(__name__)

_FORM_COLUMNS = (
    "form_id, name, description, external_store_id, external_table_id, "
    "published, subscription_id, created_at, updated_at"
)


def _insert_questions(conn: Connection, form_id: str, questions: List[Question]) -> None:
    for order, q in enumerate(questions, start=1):
        rule_json = json.dumps(q.visibility_rule.model_dump(by_alias=True)) if q.visibility_rule else None
        conn.execute(
            sql_text(
                """
                INSERT INTO form_question (
                    form_id, question_order, question_key, external_field_id, external_field_name,
                    label, question_type, options_json, required, visibility_rule_json
                ) VALUES (:fid, :ord, :key, :efid, :efname, :label, :qtype, :opts, :req, :rule)
                """
            ),
            {
                "fid": form_id,
                "ord": order,
                "key": q.key,
                "efid": q.external_field_id,
                "efname": q.external_field_name,
                "label": q.label,
                "qtype": q.type,
                "opts": json.dumps(list(q.options)),
                "req": bool(q.required),
                "rule": rule_json,
            },
        )


def _load_questions(conn: Connection, form_id: str) -> List[Question]:
    rows = conn.execute(
        sql_text(
            """
            SELECT question_key, external_field_id, external_field_name, label,
                   question_type, options_json, required, visibility_rule_json
            FROM form_question WHERE form_id = :fid ORDER BY question_order ASC
            """
        ),
        {"fid": form_id},
    ).fetchall()
    questions: List[Question] = []
    for key, efid, efname, label, qtype, opts, req, rule_json in rows:
        questions.append(
            Question(
                key=key,
                external_field_id=efid,
                external_field_name=efname,
                label=label,
                type=qtype,
                options=json.loads(opts or "[]"),
                required=bool(req),
                visibility_rule=Rule.model_validate(json.loads(rule_json)) if rule_json else None,
            )
        )
    return questions


def _row_to_form(conn: Connection, row: Any) -> Form:
    form_id, name, description, store_id, table_id, published, sub_id, created_at, updated_at = row
    return Form(
        id=form_id,
        name=name,
        description=description or "",
        external_store_id=store_id,
        external_table_id=table_id,
        published=bool(published),
        subscription_id=sub_id,
        questions=_load_questions(conn, form_id),
        created_at=created_at,
        updated_at=updated_at,
    )


def create_form(definition: FormDefinition) -> Form:
    form_id = str(uuid.uuid4())
    now = utc_now_iso()
    with transaction() as conn:
        conn.execute(
            sql_text(
                f"""
                INSERT INTO form ({_FORM_COLUMNS})
                VALUES (:fid, :name, :descr, :store, :tbl, :pub, NULL, :now, :now)
                """
            ),
            {
                "fid": form_id,
                "name": definition.name,
                "descr": definition.description,
                "store": definition.external_store_id,
                "tbl": definition.external_table_id,
                "pub": bool(definition.published),
                "now": now,
            },
        )
        _insert_questions(conn, form_id, definition.questions)
    logger.info("form_created form_id=%s questions=%s", form_id, len(definition.questions))
    return get_form(form_id)


def get_form(form_id: str, conn: Optional[Connection] = None) -> Form:
    with transaction(conn) as c:
        row = c.execute(
            sql_text(f"SELECT {_FORM_COLUMNS} FROM form WHERE form_id = :fid"),
            {"fid": str(form_id)},
        ).fetchone()
        if row is None:
            raise NotFoundError("form", str(form_id))
        return _row_to_form(c, row)


def list_forms() -> List[Form]:
    with transaction() as conn:
        rows = conn.execute(sql_text(f"SELECT {_FORM_COLUMNS} FROM form ORDER BY created_at DESC")).fetchall()
        return [_row_to_form(conn, row) for row in rows]


def find_form_by_subscription(subscription_id: str, external_store_id: Optional[str] = None) -> Optional[Form]:
    """Return the form owning `subscription_id`, optionally scoped to a store."""
    query = f"SELECT {_FORM_COLUMNS} FROM form WHERE subscription_id = :sid"
    params = {"sid": str(subscription_id)}
    if external_store_id is not None:
        query += " AND external_store_id = :store"
        params["store"] = str(external_store_id)
    with transaction() as conn:
        row = conn.execute(sql_text(query), params).fetchone()
        return _row_to_form(conn, row) if row is not None else None


def list_subscribed_forms() -> List[Form]:
    with transaction() as conn:
        rows = conn.execute(
            sql_text(f"SELECT {_FORM_COLUMNS} FROM form WHERE subscription_id IS NOT NULL")
        ).fetchall()
        return [_row_to_form(conn, row) for row in rows]


def update_form(
    form_id: str,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    published: Optional[bool] = None,
    questions: Optional[List[Question]] = None,
) -> Form:
    with transaction() as conn:
        current = get_form(form_id, conn)
        conn.execute(
            sql_text(
                """
                UPDATE form SET name = :name, description = :descr, published = :pub, updated_at = :now
                WHERE form_id = :fid
                """
            ),
            {
                "fid": current.id,
                "name": name if name is not None else current.name,
                "descr": description if description is not None else current.description,
                "pub": bool(published) if published is not None else current.published,
                "now": utc_now_iso(),
            },
        )
        if questions is not None:
            conn.execute(sql_text("DELETE FROM form_question WHERE form_id = :fid"), {"fid": current.id})
            _insert_questions(conn, current.id, questions)
    logger.info("form_updated form_id=%s questions_replaced=%s", form_id, questions is not None)
    return get_form(form_id)


def set_subscription(form_id: str, subscription_id: Optional[str]) -> Form:
    with transaction() as conn:
        get_form(form_id, conn)
        conn.execute(
            sql_text("UPDATE form SET subscription_id = :sid, updated_at = :now WHERE form_id = :fid"),
            {"sid": subscription_id, "now": utc_now_iso(), "fid": str(form_id)},
        )
    logger.info("form_subscription_set form_id=%s subscription_id=%s", form_id, subscription_id)
    return get_form(form_id)


def delete_form(form_id: str) -> Form:
    """Delete a form with its questions and responses; return what was deleted."""
    with transaction() as conn:
        form = get_form(form_id, conn)
        params = {"fid": form.id}
        conn.execute(sql_text("DELETE FROM form_response WHERE form_id = :fid"), params)
        conn.execute(sql_text("DELETE FROM form_question WHERE form_id = :fid"), params)
        conn.execute(sql_text("DELETE FROM form WHERE form_id = :fid"), params)
    logger.info("form_deleted form_id=%s", form_id)
    return form


__all__ = [
    "create_form",
    "get_form",
    "list_forms",
    "find_form_by_subscription",
    "list_subscribed_forms",
    "update_form",
    "set_subscription",
    "delete_form",
]
