"""Form authoring and preview routes."""

from __future__ import annotations

import logging

import anyio
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response

from formsync.logic import repository_cursors, repository_forms, repository_responses
from formsync.logic.reconciliation_worker import ReconciliationManager
from formsync.logic.rule_authoring import check_referenced_keys_kept, normalize_questions
from formsync.logic.visibility import visible_questions
from formsync.models.form import FormDefinition, FormUpdate
from formsync.models.response import EvaluateRequest
from formsync.routes.dependencies import get_reconciliation_manager

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/forms", summary="Create a form")
def create_form(definition: FormDefinition):
    questions = normalize_questions(definition.questions)
    form = repository_forms.create_form(definition.model_copy(update={"questions": questions}))
    return JSONResponse(form.model_dump(by_alias=True), status_code=201)


@router.get("/forms", summary="List forms")
def list_forms():
    return [f.model_dump(by_alias=True) for f in repository_forms.list_forms()]


@router.get("/forms/{form_id}", summary="Get a form")
def get_form(form_id: str):
    return repository_forms.get_form(form_id).model_dump(by_alias=True)


@router.put("/forms/{form_id}", summary="Update a form")
def update_form(form_id: str, update: FormUpdate):
    repository_forms.get_form(form_id)
    questions = None
    if update.questions is not None:
        questions = normalize_questions(update.questions)
        check_referenced_keys_kept(questions, repository_responses.referenced_question_keys(form_id))
    form = repository_forms.update_form(
        form_id,
        name=update.name,
        description=update.description,
        published=update.published,
        questions=questions,
    )
    return form.model_dump(by_alias=True)


@router.delete("/forms/{form_id}", summary="Delete a form with its responses")
async def delete_form(
    form_id: str,
    manager: ReconciliationManager = Depends(get_reconciliation_manager),
):
    # The row goes first so a late notification cannot restart the worker
    form = await anyio.to_thread.run_sync(repository_forms.delete_form, form_id)
    if form.subscription_id:
        await manager.stop_worker(form.subscription_id)
        await anyio.to_thread.run_sync(repository_cursors.delete_cursor, form.subscription_id)
    return Response(status_code=204)


@router.post("/forms/{form_id}/evaluate", summary="Preview visible questions for partial answers")
def evaluate_form(form_id: str, payload: EvaluateRequest):
    form = repository_forms.get_form(form_id)
    visible = visible_questions(form.questions, payload.answers)
    return {
        "formId": form.id,
        "name": form.name,
        "visibleQuestionKeys": [q.key for q in visible],
        "visibleQuestions": [q.model_dump(by_alias=True) for q in visible],
    }


__all__ = ["router"]
