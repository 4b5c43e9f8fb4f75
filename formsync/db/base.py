"""SQLAlchemy engine and transaction helpers.

SQLite serves local development and tests, PostgreSQL production. No
declarative models are defined: repositories issue SQL text and hand plain
pydantic models to callers.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./formsync.db"


def _db_url() -> str:
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return the process-wide Engine, rebuilding it when the URL changes.

    In-memory SQLite needs a StaticPool so every session sees the same
    database; file-backed SQLite is shared across the worker threads used by
    the reconciliation loop.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _ENGINE_URL or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in resolved_url:
                kwargs["poolclass"] = StaticPool
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db_engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


@contextmanager
def transaction(conn: Optional[Connection] = None) -> Iterator[Connection]:
    """Yield a connection inside a transaction.

    Reuses `conn` when the caller already holds one, so repository helpers can
    join a wider unit of work (a reconciliation batch plus its cursor).
    """
    if conn is not None:
        yield conn
        return
    with get_engine().begin() as own:
        yield own
