"""Database bootstrap: engine construction, transactions and migrations."""

from formsync.db.base import get_engine, transaction
from formsync.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "transaction",
    "apply_migrations",
]
