"""formsync: forms backed by an external record store.

Respondent answers are validated against conditional-visibility rules and
written as records to the external store; a per-subscription reconciliation
worker keeps stored responses consistent with the store's change feed.
Business logic lives in `formsync/logic/`, HTTP handlers in `formsync/routes/`.
"""

from __future__ import annotations

from formsync.main import create_app

__all__ = ["create_app"]
