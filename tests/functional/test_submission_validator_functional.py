"""Functional tests for submission validation and field mapping."""

from __future__ import annotations

import pytest

from formsync.logic.errors import SubmissionValidationError
from formsync.logic.submission_validator import answers_for_storage, validate
from formsync.models.form import Form, Question

from conftest import role_questions


def _form(questions) -> Form:
    return Form(
        id="form-1",
        name="Survey",
        external_store_id="appBase1",
        external_table_id="tblPeople",
        published=True,
        questions=questions,
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-01T00:00:00.000Z",
    )


def _messages(exc_info) -> list[str]:
    return [e.message for e in exc_info.value.errors]


class TestRoleScenario:
    def test_designer_gets_only_role_field(self):
        assert validate(_form(role_questions()), {"q1": "Designer"}) == {"Role": "Designer"}

    def test_engineer_without_stack_is_rejected(self):
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate(_form(role_questions()), {"q1": "Engineer"})
        assert _messages(exc_info) == ["Favourite stack is required"]
        assert exc_info.value.errors[0].question_key == "q2"

    def test_engineer_with_stack_maps_both_fields(self):
        fields = validate(_form(role_questions()), {"q1": "Engineer", "q2": "hi"})
        assert fields == {"Role": "Engineer", "Stack": "hi"}

    def test_hidden_required_question_is_skipped_even_if_answered_badly(self):
        fields = validate(_form(role_questions()), {"q1": "Designer", "q2": 123})
        assert fields == {"Role": "Designer"}


def _choice_form() -> Form:
    return _form(
        [
            Question(key="name", external_field_id="f1", external_field_name="Name", label="Name", type="shortText", required=True),
            Question(
                key="team",
                external_field_id="f2",
                external_field_name="Team",
                label="Team",
                type="singleChoice",
                options=["Red", "Blue"],
                required=True,
            ),
            Question(
                key="skills",
                external_field_id="f3",
                external_field_name="Skills",
                label="Skills",
                type="multiChoice",
                options=["Python", "Go", "SQL"],
            ),
            Question(key="cv", external_field_id="f4", external_field_name="CV", label="CV", type="attachments"),
        ]
    )


class TestErrors:
    def test_all_errors_accumulated_in_form_order(self):
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate(_choice_form(), {"team": "Green", "skills": ["Python", "Rust", "Cobol"], "cv": "file.pdf"})
        assert _messages(exc_info) == [
            "Name is required",
            "Team must be one of the available options",
            "Skills has invalid choices: Rust, Cobol",
            "CV must be a list of attachments",
        ]

    @pytest.mark.parametrize("empty", [None, "", []])
    def test_empty_values_count_as_missing(self, empty):
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate(_choice_form(), {"name": empty, "team": "Red"})
        assert _messages(exc_info) == ["Name is required"]

    def test_multi_choice_requires_a_list(self):
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate(_choice_form(), {"name": "Ada", "team": "Red", "skills": "Python"})
        assert _messages(exc_info) == ["Skills must be a list of selections"]

    def test_text_must_be_string(self):
        with pytest.raises(SubmissionValidationError) as exc_info:
            validate(_choice_form(), {"name": ["Ada"], "team": "Red"})
        assert _messages(exc_info) == ["Name must be text"]


class TestOutput:
    def test_output_keyed_by_external_field_name(self):
        fields = validate(
            _choice_form(),
            {"name": "Ada", "team": "Blue", "skills": ["SQL", "Go"], "cv": [{"url": "https://x/cv.pdf"}]},
        )
        assert fields == {
            "Name": "Ada",
            "Team": "Blue",
            "Skills": ["SQL", "Go"],
            "CV": [{"url": "https://x/cv.pdf"}],
        }

    def test_optional_empty_answers_are_omitted(self):
        fields = validate(_choice_form(), {"name": "Ada", "team": "Red", "skills": [], "cv": []})
        assert fields == {"Name": "Ada", "Team": "Red"}

    def test_unknown_answer_keys_are_ignored(self):
        fields = validate(_choice_form(), {"name": "Ada", "team": "Red", "bogus": "x"})
        assert fields == {"Name": "Ada", "Team": "Red"}

    def test_success_and_failure_are_exclusive(self):
        form = _form(role_questions())
        for answers in ({"q1": "Designer"}, {"q1": "Engineer"}, {"q1": "Engineer", "q2": "hi"}, {}):
            try:
                fields = validate(form, answers)
            except SubmissionValidationError as exc:
                assert exc.errors
            else:
                assert isinstance(fields, dict)

    def test_storage_answers_keep_only_visible_keys(self):
        form = _form(role_questions())
        assert answers_for_storage(form, {"q1": "Designer", "q2": "ignored"}) == {"q1": "Designer"}
