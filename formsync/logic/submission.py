"""Submission flow: validate, create the external record, persist the response."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import anyio

from formsync.logic import repository_responses
from formsync.logic.attachments import AttachmentResolver, passthrough_resolver, resolve_attachment_answers
from formsync.logic.errors import InvalidStateError
from formsync.logic.events import RESPONSE_SUBMITTED, publish
from formsync.logic.submission_validator import answers_for_storage, validate
from formsync.models.form import Form
from formsync.models.response import StoredResponse

logger = logging.getLogger(__name__)


async def submit_response(
    form: Form,
    raw_answers: Optional[Mapping[str, Any]],
    client,
    resolver: AttachmentResolver = passthrough_resolver,
) -> StoredResponse:
    """Submit one response.

    Validation completes before the record store is called; on any validation
    error nothing is sent. The local response is written only after the
    record store returned the new record id.
    """
    if not form.published:
        raise InvalidStateError(f"form {form.id} is not published")

    answers = resolve_attachment_answers(form, raw_answers or {}, resolver)
    fields = validate(form, answers)
    record_id = await client.create_record(form.external_store_id, form.external_table_id, fields)
    stored = await anyio.to_thread.run_sync(
        repository_responses.create_response,
        form.id,
        record_id,
        answers_for_storage(form, answers),
    )
    publish(RESPONSE_SUBMITTED, {"form_id": form.id, "response_id": stored.id, "external_record_id": record_id})
    return stored


__all__ = ["submit_response"]
