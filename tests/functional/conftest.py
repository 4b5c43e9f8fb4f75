"""Functional test bootstrap.

Points the service at a file-backed SQLite database shared by the whole
session, applies the migrations once, and empties every table before each
test. Also provides an in-process stand-in for the record store.
"""

from __future__ import annotations

import os
import pathlib
from collections import deque
from typing import Any, Dict, List, Optional

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Must be set before the engine is first built
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]

from sqlalchemy import text as sql_text  # noqa: E402

from formsync.db.base import get_engine  # noqa: E402
from formsync.db.migrations_runner import apply_migrations  # noqa: E402
from formsync.logic.events import get_buffered_events  # noqa: E402
from formsync.models.change_feed import ChangeBatch  # noqa: E402
from formsync.models.form import FormDefinition, Question  # noqa: E402

DB_URL = os.environ["TEST_DATABASE_URL"]


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    apply_migrations(get_engine(DB_URL))
    yield


@pytest.fixture(autouse=True)
def clean_db():
    with get_engine(DB_URL).begin() as conn:
        for table in ("form_response", "form_question", "subscription_cursor", "form"):
            conn.execute(sql_text(f"DELETE FROM {table}"))
    get_buffered_events(clear=True)
    yield


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeRecordStore:
    """Records creates and serves queued change batches."""

    def __init__(self) -> None:
        self.created: List[Dict[str, Any]] = []
        self.batches: deque = deque()
        self.fetch_calls: List[Any] = []
        self.create_error: Optional[Exception] = None
        self.fetch_error: Optional[Exception] = None
        self.on_fetch = None

    async def create_record(self, store_id: str, table_id: str, fields: Dict[str, Any]) -> str:
        if self.create_error is not None:
            raise self.create_error
        self.created.append({"store_id": store_id, "table_id": table_id, "fields": dict(fields)})
        return f"rec{len(self.created):03d}"

    async def fetch_change_batch(self, store_id: str, subscription_id: str, cursor: Any) -> ChangeBatch:
        self.fetch_calls.append(cursor)
        if self.on_fetch is not None:
            self.on_fetch(len(self.fetch_calls))
        if self.fetch_error is not None:
            raise self.fetch_error
        if self.batches:
            return self.batches.popleft()
        return ChangeBatch(payloads=[], cursor=cursor, might_have_more=False)


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


def role_questions() -> List[Question]:
    """Q1 single choice; Q2 required text shown only to engineers."""
    return [
        Question.model_validate(
            {
                "key": "q1",
                "externalFieldId": "fldRole",
                "externalFieldName": "Role",
                "label": "Role",
                "type": "singleChoice",
                "options": ["Engineer", "Designer"],
            }
        ),
        Question.model_validate(
            {
                "key": "q2",
                "externalFieldId": "fldStack",
                "externalFieldName": "Stack",
                "label": "Favourite stack",
                "type": "shortText",
                "required": True,
                "visibilityRule": {
                    "combinator": "AND",
                    "conditions": [{"targetKey": "q1", "operator": "equals", "value": "Engineer"}],
                },
            }
        ),
    ]


def role_form_definition(published: bool = True) -> FormDefinition:
    return FormDefinition(
        name="Team survey",
        external_store_id="appBase1",
        external_table_id="tblPeople",
        published=published,
        questions=role_questions(),
    )
