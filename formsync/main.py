"""Application factory.

Wires logging, problem+json handlers and the API routers, and owns the
lifespan of the reconciliation workers: they start with the app, one per
subscribed form, and are stopped between batches on shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import anyio
from fastapi import FastAPI
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from formsync.clients.record_store import RecordStoreClient, static_token
from formsync.config import AppConfig, load_config
from formsync.db.base import get_engine
from formsync.db.migrations_runner import apply_migrations
from formsync.http.problem import register_exception_handlers
from formsync.logging_setup import configure_logging
from formsync.logic.attachments import AttachmentResolver, passthrough_resolver
from formsync.logic.reconciliation_worker import ReconciliationManager
from formsync.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> dict:
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1"))
        return {"status": "ok", "db": True}
    except SQLAlchemyError as e:
        logger.error("Health DB check failed", exc_info=True)
        return {"status": "degraded", "db": False, "reason": str(e)}


def create_app(
    config: Optional[AppConfig] = None,
    record_store_client=None,
    attachment_resolver: Optional[AttachmentResolver] = None,
) -> FastAPI:
    """Build the FastAPI application.

    `record_store_client` and `attachment_resolver` stand in for the external
    collaborators; when omitted, an HTTP client is built from configuration
    and attachments pass through unchanged.
    """
    configure_logging()
    cfg = config or load_config()
    engine = get_engine(cfg.database.dsn)
    owns_client = record_store_client is None
    client = record_store_client or RecordStoreClient(
        cfg.record_store.api_base_url,
        static_token(cfg.record_store.access_token),
        timeout_seconds=cfg.record_store.timeout_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if cfg.database.auto_apply_migrations:
            applied = await anyio.to_thread.run_sync(apply_migrations, engine)
            logger.info("startup_migrations applied=%s", applied)
        else:
            logger.info("AUTO_APPLY_MIGRATIONS disabled; skipping migrations at startup")
        async with anyio.create_task_group() as tg:
            manager = ReconciliationManager(
                tg,
                client,
                poll_interval_seconds=cfg.reconciliation.poll_interval_seconds,
                retry_backoff_seconds=cfg.reconciliation.retry_backoff_seconds,
                enabled=cfg.reconciliation.enabled,
            )
            app.state.reconciliation_manager = manager
            started = await manager.start_all()
            logger.info("reconciliation_started subscriptions=%s", started)
            try:
                yield
            finally:
                await manager.shutdown(cfg.reconciliation.shutdown_timeout_seconds)
                tg.cancel_scope.cancel()
        if owns_client:
            await client.aclose()

    app = FastAPI(title="formsync", lifespan=lifespan)
    app.state.config = cfg
    app.state.record_store_client = client
    app.state.attachment_resolver = attachment_resolver or passthrough_resolver
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return _health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
