"""Change-feed subscription lifecycle routes."""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from formsync.logic import repository_cursors, repository_forms
from formsync.logic.errors import InvalidStateError, NotFoundError
from formsync.logic.reconciliation_worker import ReconciliationManager
from formsync.models.form import SubscriptionAttach
from formsync.models.response import SubscriptionHealth
from formsync.routes.dependencies import get_reconciliation_manager

router = APIRouter()
logger = logging.getLogger(__name__)


async def _detach(form_id: str, subscription_id: str, manager: ReconciliationManager) -> None:
    """Stop the worker and drop the cursor of a subscription no form carries any more.

    Callers clear the form's `subscription_id` first; a notification arriving
    after that can no longer restart the worker.
    """
    await manager.stop_worker(subscription_id)
    await anyio.to_thread.run_sync(repository_cursors.delete_cursor, subscription_id)
    logger.info("subscription_detached form_id=%s subscription_id=%s", form_id, subscription_id)


@router.put("/forms/{form_id}/subscription", summary="Attach a change-feed subscription to a form")
async def attach_subscription(
    form_id: str,
    payload: SubscriptionAttach,
    manager: ReconciliationManager = Depends(get_reconciliation_manager),
):
    form = await anyio.to_thread.run_sync(repository_forms.get_form, form_id)
    owner = await anyio.to_thread.run_sync(repository_forms.find_form_by_subscription, payload.subscription_id)
    if owner is not None and owner.id != form.id:
        raise InvalidStateError(f"subscription {payload.subscription_id} already belongs to another form")
    previous = form.subscription_id
    form = await anyio.to_thread.run_sync(repository_forms.set_subscription, form.id, payload.subscription_id)
    if previous and previous != payload.subscription_id:
        await _detach(form.id, previous, manager)
    await manager.start_worker(payload.subscription_id)
    return form.model_dump(by_alias=True)


@router.delete("/forms/{form_id}/subscription", summary="Detach the form's subscription")
async def detach_subscription(
    form_id: str,
    manager: ReconciliationManager = Depends(get_reconciliation_manager),
):
    form = await anyio.to_thread.run_sync(repository_forms.get_form, form_id)
    if form.subscription_id:
        await anyio.to_thread.run_sync(repository_forms.set_subscription, form.id, None)
        await _detach(form.id, form.subscription_id, manager)
    return Response(status_code=204)


@router.get("/subscriptions/{subscription_id}/health", summary="Reconciliation health for a subscription")
async def subscription_health(
    subscription_id: str,
    manager: ReconciliationManager = Depends(get_reconciliation_manager),
):
    health = manager.health(subscription_id)
    if health is None:
        form = await anyio.to_thread.run_sync(repository_forms.find_form_by_subscription, subscription_id)
        if form is None:
            raise NotFoundError("subscription", subscription_id)
        health = SubscriptionHealth(subscription_id=subscription_id, running=False)
    state = await anyio.to_thread.run_sync(repository_cursors.get_cursor_state, subscription_id)
    body = health.model_dump(by_alias=True)
    body["lastPolledAt"] = state[1] if state else None
    return body


__all__ = ["router"]
