"""Request-scoped access to application collaborators held on `app.state`."""

from __future__ import annotations

from fastapi import Request

from formsync.logic.attachments import AttachmentResolver
from formsync.logic.reconciliation_worker import ReconciliationManager


def get_record_store_client(request: Request):
    return request.app.state.record_store_client


def get_attachment_resolver(request: Request) -> AttachmentResolver:
    return request.app.state.attachment_resolver


def get_reconciliation_manager(request: Request) -> ReconciliationManager:
    return request.app.state.reconciliation_manager
