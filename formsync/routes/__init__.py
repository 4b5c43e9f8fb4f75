"""APIRouter registration for the form service."""

from __future__ import annotations

from fastapi import APIRouter

from formsync.routes.forms import router as forms_router
from formsync.routes.submissions import router as submissions_router
from formsync.routes.subscriptions import router as subscriptions_router
from formsync.routes.webhooks import router as webhooks_router

api_router = APIRouter()
api_router.include_router(forms_router, tags=["Forms"])
api_router.include_router(submissions_router, tags=["Responses"])
api_router.include_router(subscriptions_router, tags=["Subscriptions"])
api_router.include_router(webhooks_router, tags=["Webhooks"])

__all__ = ["api_router"]
