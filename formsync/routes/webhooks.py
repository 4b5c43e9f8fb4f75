"""Inbound change notifications from the record store.

The handler only wakes the subscription's worker and answers at once; the
fetch-and-apply work never runs inside the request.
"""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends

from formsync.logic import repository_forms
from formsync.logic.errors import NotFoundError
from formsync.logic.reconciliation_worker import ReconciliationManager
from formsync.logic.timestamps import utc_now_iso
from formsync.models.change_feed import WebhookNotification
from formsync.routes.dependencies import get_reconciliation_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhooks/record-store", summary="Receive a change notification")
async def receive_notification(
    notification: WebhookNotification,
    manager: ReconciliationManager = Depends(get_reconciliation_manager),
):
    store_id = notification.base.get("id")
    subscription_id = notification.webhook.get("id")
    if not store_id or not subscription_id:
        logger.warning("webhook_notification_incomplete base=%s webhook=%s", notification.base, notification.webhook)
        return {"received": True, "dispatched": False}

    dispatched = manager.notify(str(subscription_id), str(store_id))
    if not dispatched and manager.enabled:
        form = await anyio.to_thread.run_sync(
            repository_forms.find_form_by_subscription, str(subscription_id), str(store_id)
        )
        if form is not None:
            # Worker not running (e.g. after a restart race); starting it drains immediately
            try:
                dispatched = await manager.start_worker(str(subscription_id)) is not None
            except NotFoundError:
                logger.info("webhook_subscription_detached subscription_id=%s", subscription_id)
                dispatched = False
    logger.info(
        "webhook_notification_received store_id=%s subscription_id=%s dispatched=%s",
        store_id,
        subscription_id,
        dispatched,
    )
    return {"received": True, "dispatched": dispatched}


@router.get("/webhooks/record-store/health", summary="Webhook endpoint health")
def webhook_health():
    return {"status": "ok", "endpoint": "/api/v1/webhooks/record-store", "timestamp": utc_now_iso()}


__all__ = ["router"]
