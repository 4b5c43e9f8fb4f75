"""Question and rule vocabulary.

Plain constants containers instead of Enums, so rule trees stay JSON-shaped
and a malformed value can still be carried (and reported) by the evaluator.
"""

from __future__ import annotations

from typing import Optional


class QuestionType:
    SHORT_TEXT = "shortText"
    LONG_TEXT = "longText"
    SINGLE_CHOICE = "singleChoice"
    MULTI_CHOICE = "multiChoice"
    ATTACHMENTS = "attachments"

    ALL = frozenset({SHORT_TEXT, LONG_TEXT, SINGLE_CHOICE, MULTI_CHOICE, ATTACHMENTS})
    CHOICE = frozenset({SINGLE_CHOICE, MULTI_CHOICE})
    TEXT = frozenset({SHORT_TEXT, LONG_TEXT})


class Operator:
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"

    ALL = frozenset({EQUALS, NOT_EQUALS, CONTAINS})


class Combinator:
    AND = "AND"
    OR = "OR"

    ALL = frozenset({AND, OR})


# Record-store field type -> question type
_EXTERNAL_FIELD_TYPES = {
    "singleLineText": QuestionType.SHORT_TEXT,
    "multilineText": QuestionType.LONG_TEXT,
    "singleSelect": QuestionType.SINGLE_CHOICE,
    "multipleSelects": QuestionType.MULTI_CHOICE,
    "multipleAttachments": QuestionType.ATTACHMENTS,
}


def map_field_type(external_type: str | None) -> Optional[str]:
    """Return the question type for a record-store field type.

    Accepts either vocabulary: native question types map to themselves.
    Unsupported field types (formulas, lookups, numbers...) return None.
    """
    if not external_type:
        return None
    if external_type in QuestionType.ALL:
        return external_type
    return _EXTERNAL_FIELD_TYPES.get(external_type)


__all__ = [
    "QuestionType",
    "Operator",
    "Combinator",
    "map_field_type",
]
