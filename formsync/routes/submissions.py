"""Respondent submission and owner response-management routes."""

from __future__ import annotations

import logging
from typing import Optional

import anyio
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from formsync.logic import repository_forms, repository_responses
from formsync.logic.submission import submit_response
from formsync.models.response import ResponseStatus, SubmissionRequest, SubmissionResult
from formsync.routes.dependencies import get_attachment_resolver, get_record_store_client

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/forms/{form_id}/submit", summary="Submit a response")
async def submit(
    form_id: str,
    payload: SubmissionRequest,
    client=Depends(get_record_store_client),
    resolver=Depends(get_attachment_resolver),
):
    form = await anyio.to_thread.run_sync(repository_forms.get_form, form_id)
    stored = await submit_response(form, payload.answers, client, resolver)
    result = SubmissionResult(response_id=stored.id, external_record_id=stored.external_record_id)
    return JSONResponse(result.model_dump(by_alias=True), status_code=201)


@router.get("/forms/{form_id}/responses", summary="List responses of a form")
def list_responses(form_id: str, status: Optional[str] = Query(default=None)):
    if status is not None and status not in ResponseStatus.ALL:
        raise HTTPException(
            status_code=422,
            detail={
                "title": "Invalid Request",
                "detail": f"status must be one of {sorted(ResponseStatus.ALL)}",
                "code": "QUERY_PARAM_INVALID",
            },
        )
    repository_forms.get_form(form_id)
    return [r.model_dump(by_alias=True) for r in repository_responses.list_responses(form_id, status)]


@router.delete("/forms/{form_id}/responses/{response_id}", summary="Hard-delete a response")
def delete_response(form_id: str, response_id: str):
    repository_responses.delete_response(form_id, response_id)
    return Response(status_code=204)


__all__ = ["router"]
