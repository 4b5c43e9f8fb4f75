"""Configuration precedence and validation."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from formsync import config as config_module
from formsync.config import load_config

_ENV_KEYS = (
    "DATABASE_URL",
    "AUTO_APPLY_MIGRATIONS",
    "RECORD_STORE_API_URL",
    "RECORD_STORE_ACCESS_TOKEN",
    "RECORD_STORE_TIMEOUT_SECONDS",
    "RECONCILIATION_ENABLED",
    "RECONCILIATION_POLL_INTERVAL_SECONDS",
    "RECONCILIATION_SHUTDOWN_TIMEOUT_SECONDS",
    "RECONCILIATION_RETRY_BACKOFF_SECONDS",
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run with an empty working directory and none of the config env vars set."""
    monkeypatch.chdir(tmp_path)
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *a, **k: False)
    return tmp_path


def test_defaults(isolated):
    cfg = load_config()
    assert cfg.database.dsn == "sqlite+pysqlite:///./formsync.db"
    assert cfg.database.auto_apply_migrations is True
    assert cfg.record_store.api_base_url == "https://api.airtable.com/v0"
    assert cfg.record_store.access_token is None
    assert cfg.reconciliation.enabled is True
    assert cfg.reconciliation.poll_interval_seconds == 300.0
    assert cfg.reconciliation.retry_backoff_seconds == 5.0


def test_json_file_then_config_dir_then_env(isolated, monkeypatch):
    (isolated / "formsync_config.json").write_text(
        json.dumps(
            {
                "database": {"dsn": "sqlite:///from-json.db"},
                "record_store": {"access_token": "json-token", "timeout_seconds": 4},
                "reconciliation": {"poll_interval_seconds": 60},
            }
        ),
        encoding="utf-8",
    )
    (isolated / "config").mkdir()
    (isolated / "config" / "record_store.access_token").write_text("file-token\n", encoding="utf-8")
    monkeypatch.setenv("RECONCILIATION_POLL_INTERVAL_SECONDS", "15")

    cfg = load_config()
    assert cfg.database.dsn == "sqlite:///from-json.db"
    assert cfg.record_store.access_token == "file-token"
    assert cfg.record_store.timeout_seconds == 4.0
    assert cfg.reconciliation.poll_interval_seconds == 15.0


def test_boolean_flags_from_env(isolated, monkeypatch):
    monkeypatch.setenv("RECONCILIATION_ENABLED", "off")
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "0")
    cfg = load_config()
    assert cfg.reconciliation.enabled is False
    assert cfg.database.auto_apply_migrations is False


def test_non_positive_interval_rejected(isolated, monkeypatch):
    monkeypatch.setenv("RECONCILIATION_POLL_INTERVAL_SECONDS", "0")
    with pytest.raises(ValidationError):
        load_config()


def test_non_http_api_url_rejected(isolated, monkeypatch):
    monkeypatch.setenv("RECORD_STORE_API_URL", "ftp://records.example.test")
    with pytest.raises(ValidationError):
        load_config()


def test_unparseable_number_rejected(isolated, monkeypatch):
    monkeypatch.setenv("RECORD_STORE_TIMEOUT_SECONDS", "soon")
    with pytest.raises(ValueError):
        load_config()


def test_retry_backoff_from_env(isolated, monkeypatch):
    monkeypatch.setenv("RECONCILIATION_RETRY_BACKOFF_SECONDS", "0.5")
    assert load_config().reconciliation.retry_backoff_seconds == 0.5
