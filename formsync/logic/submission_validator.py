"""Submission validation and translation to record-store fields.

`validate` is all-or-nothing: it returns the complete field map for the
record store, or raises `SubmissionValidationError` carrying every problem
found. Hidden questions are neither validated nor emitted.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional
import logging

from formsync.logic.errors import SubmissionValidationError
from formsync.logic.visibility import visible_questions
from formsync.models.form import Question
from formsync.models.question_type import QuestionType
from formsync.models.response import FieldError

logger = logging.getLogger(__name__)


def is_empty_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value == "":
        return True
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return True
    return False


def _type_error(question: Question, value: Any) -> Optional[str]:
    """Return an error message if `value` does not fit the question type."""
    qtype = question.type
    if qtype == QuestionType.SINGLE_CHOICE:
        if not isinstance(value, str) or value not in question.options:
            return f"{question.label} must be one of the available options"
        return None
    if qtype == QuestionType.MULTI_CHOICE:
        if not isinstance(value, (list, tuple)):
            return f"{question.label} must be a list of selections"
        invalid = [str(v) for v in value if v not in question.options]
        if invalid:
            return f"{question.label} has invalid choices: {', '.join(invalid)}"
        return None
    if qtype == QuestionType.ATTACHMENTS:
        if not isinstance(value, (list, tuple)):
            return f"{question.label} must be a list of attachments"
        return None
    if qtype in QuestionType.TEXT:
        if not isinstance(value, str):
            return f"{question.label} must be text"
        return None
    return f"{question.label} has an unsupported question type"


def validate(form, raw_answers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Validate `raw_answers` against `form` and map them to external field names.

    Visibility is computed once against everything submitted, so an answer to a
    question that would only appear later still counts toward earlier rules.
    """
    answers: Mapping[str, Any] = raw_answers or {}
    visible = {q.key for q in visible_questions(form.questions, answers)}

    errors: List[FieldError] = []
    fields: Dict[str, Any] = {}
    for question in form.questions:
        if question.key not in visible:
            continue
        value = answers.get(question.key)
        if is_empty_answer(value):
            if question.required:
                errors.append(FieldError(question_key=question.key, message=f"{question.label} is required"))
            continue
        problem = _type_error(question, value)
        if problem:
            errors.append(FieldError(question_key=question.key, message=problem))
            continue
        fields[question.external_field_name] = list(value) if isinstance(value, tuple) else value

    if errors:
        logger.info(
            "submission_validation_failed form_id=%s error_count=%s keys=%s",
            getattr(form, "id", None),
            len(errors),
            [e.question_key for e in errors],
        )
        raise SubmissionValidationError(errors)
    return fields


def answers_for_storage(form, raw_answers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return the visible, non-empty answers keyed by question key.

    Only meaningful after `validate` succeeded for the same inputs.
    """
    answers: Mapping[str, Any] = raw_answers or {}
    return {
        q.key: answers[q.key]
        for q in visible_questions(form.questions, answers)
        if not is_empty_answer(answers.get(q.key))
    }


__all__ = ["validate", "answers_for_storage", "is_empty_answer"]
