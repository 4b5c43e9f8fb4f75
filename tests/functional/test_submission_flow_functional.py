"""End-to-end submission flow without HTTP: validation, record creation, persistence."""

from __future__ import annotations

import pytest

from formsync.logic import repository_forms, repository_responses
from formsync.logic.errors import ExternalApiError, InvalidStateError, SubmissionValidationError
from formsync.logic.events import RESPONSE_SUBMITTED, get_buffered_events
from formsync.logic.submission import submit_response
from formsync.models.form import FormDefinition, Question

from conftest import role_form_definition


@pytest.mark.anyio
async def test_visible_answers_are_sent_and_stored(fake_store):
    form = repository_forms.create_form(role_form_definition())
    stored = await submit_response(form, {"q1": "Engineer", "q2": "Python"}, fake_store)

    assert fake_store.created == [
        {"store_id": "appBase1", "table_id": "tblPeople", "fields": {"Role": "Engineer", "Stack": "Python"}}
    ]
    assert stored.external_record_id == "rec001"
    assert repository_responses.get_response(stored.id).answers == {"q1": "Engineer", "q2": "Python"}
    assert [e["type"] for e in get_buffered_events()] == [RESPONSE_SUBMITTED]


@pytest.mark.anyio
async def test_hidden_answers_are_dropped(fake_store):
    form = repository_forms.create_form(role_form_definition())
    stored = await submit_response(form, {"q1": "Designer", "q2": "ignored"}, fake_store)
    assert fake_store.created[0]["fields"] == {"Role": "Designer"}
    assert stored.answers == {"q1": "Designer"}


@pytest.mark.anyio
async def test_validation_failure_sends_nothing(fake_store):
    form = repository_forms.create_form(role_form_definition())
    with pytest.raises(SubmissionValidationError) as excinfo:
        await submit_response(form, {"q1": "Engineer"}, fake_store)
    assert [e.question_key for e in excinfo.value.errors] == ["q2"]
    assert fake_store.created == []
    assert repository_responses.list_responses(form.id) == []


@pytest.mark.anyio
async def test_record_store_failure_persists_nothing(fake_store):
    form = repository_forms.create_form(role_form_definition())
    fake_store.create_error = ExternalApiError("record store returned 500", status_code=500)
    with pytest.raises(ExternalApiError):
        await submit_response(form, {"q1": "Designer"}, fake_store)
    assert repository_responses.list_responses(form.id) == []


@pytest.mark.anyio
async def test_unpublished_form_rejects_submissions(fake_store):
    form = repository_forms.create_form(role_form_definition(published=False))
    with pytest.raises(InvalidStateError):
        await submit_response(form, {"q1": "Designer"}, fake_store)
    assert fake_store.created == []


@pytest.mark.anyio
async def test_attachment_urls_are_resolved_before_sending(fake_store):
    form = repository_forms.create_form(
        FormDefinition(
            name="Applications",
            external_store_id="appBase1",
            external_table_id="tblApps",
            published=True,
            questions=[
                Question(
                    key="cv",
                    external_field_id="fldCv",
                    external_field_name="CV",
                    label="CV",
                    type="attachments",
                )
            ],
        )
    )
    await submit_response(form, {"cv": ["https://files.example.test/cv.pdf"]}, fake_store)
    assert fake_store.created[0]["fields"] == {"CV": [{"url": "https://files.example.test/cv.pdf"}]}


@pytest.mark.anyio
async def test_custom_resolver_is_used(fake_store):
    form = repository_forms.create_form(
        FormDefinition(
            name="Applications",
            external_store_id="appBase1",
            external_table_id="tblApps",
            published=True,
            questions=[Question(key="cv", external_field_id="fldCv", external_field_name="CV", label="CV", type="attachments")],
        )
    )
    await submit_response(
        form,
        {"cv": ["upload-1"]},
        fake_store,
        resolver=lambda items: [{"url": f"https://cdn.example.test/{i}"} for i in items],
    )
    assert fake_store.created[0]["fields"] == {"CV": [{"url": "https://cdn.example.test/upload-1"}]}
