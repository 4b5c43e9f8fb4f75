"""Configuration loading.

Rules:
- Primary source: `formsync_config.json` at the project root.
- Overrides: text files under `config/`, then environment variables (a `.env`
  file is loaded into the environment first).
- Validation: pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("formsync_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(text: Optional[str]) -> bool:
    return str(text).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_migrations: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class RecordStoreConfig(BaseModel):
    api_base_url: str = "https://api.airtable.com/v0"
    access_token: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("api_base_url")
    @classmethod
    def url_must_be_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("record_store.api_base_url must be an http(s) URL")
        return v


class ReconciliationConfig(BaseModel):
    enabled: bool = Field(default=True)
    poll_interval_seconds: float = Field(default=300.0, gt=0)
    retry_backoff_seconds: float = Field(default=5.0, gt=0)
    shutdown_timeout_seconds: float = Field(default=30.0, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    record_store: RecordStoreConfig
    reconciliation: ReconciliationConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) formsync_config.json at project root
    4) Defaults for local development
    """
    load_dotenv()
    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    dsn = _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///./formsync.db")
    auto_migrate = _pick("AUTO_APPLY_MIGRATIONS", "database.auto_apply_migrations", "database.auto_apply_migrations", "true")

    api_url = _pick("RECORD_STORE_API_URL", "record_store.api_url", "record_store.api_base_url", "https://api.airtable.com/v0")
    token = _pick("RECORD_STORE_ACCESS_TOKEN", "record_store.access_token", "record_store.access_token")
    timeout_text = _pick("RECORD_STORE_TIMEOUT_SECONDS", "record_store.timeout_seconds", "record_store.timeout_seconds", "10")

    enabled_text = _pick("RECONCILIATION_ENABLED", "reconciliation.enabled", "reconciliation.enabled", "true")
    interval_text = _pick(
        "RECONCILIATION_POLL_INTERVAL_SECONDS",
        "reconciliation.poll_interval_seconds",
        "reconciliation.poll_interval_seconds",
        "300",
    )
    backoff_text = _pick(
        "RECONCILIATION_RETRY_BACKOFF_SECONDS",
        "reconciliation.retry_backoff_seconds",
        "reconciliation.retry_backoff_seconds",
        "5",
    )
    shutdown_text = _pick(
        "RECONCILIATION_SHUTDOWN_TIMEOUT_SECONDS",
        "reconciliation.shutdown_timeout_seconds",
        "reconciliation.shutdown_timeout_seconds",
        "30",
    )

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_migrations=_truthy(auto_migrate)),
            record_store=RecordStoreConfig(
                api_base_url=str(api_url).strip(),
                access_token=token,
                timeout_seconds=float(str(timeout_text).strip()),
            ),
            reconciliation=ReconciliationConfig(
                enabled=_truthy(enabled_text),
                poll_interval_seconds=float(str(interval_text).strip()),
                retry_backoff_seconds=float(str(backoff_text).strip()),
                shutdown_timeout_seconds=float(str(shutdown_text).strip()),
            ),
        )
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "RecordStoreConfig",
    "ReconciliationConfig",
    "load_config",
]
