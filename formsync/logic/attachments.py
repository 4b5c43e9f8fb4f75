"""Default upload collaborator.

Turns attachment answers into the file references the record store accepts.
Real deployments swap in a resolver that uploads to their file storage.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping

from formsync.models.question_type import QuestionType

AttachmentResolver = Callable[[List[Any]], List[Any]]


def passthrough_resolver(items: List[Any]) -> List[Any]:
    """Wrap bare URL strings as `{"url": ...}`; leave mappings untouched."""
    out: List[Any] = []
    for item in items:
        if isinstance(item, str):
            out.append({"url": item})
        else:
            out.append(item)
    return out


def resolve_attachment_answers(form, answers: Mapping[str, Any], resolver: AttachmentResolver) -> Dict[str, Any]:
    """Return a copy of `answers` with attachment lists passed through `resolver`.

    Values that are not lists are left for the validator to reject.
    """
    resolved = dict(answers)
    for question in form.questions:
        if question.type != QuestionType.ATTACHMENTS:
            continue
        value = resolved.get(question.key)
        if isinstance(value, (list, tuple)) and value:
            resolved[question.key] = resolver(list(value))
    return resolved


__all__ = ["AttachmentResolver", "passthrough_resolver", "resolve_attachment_answers"]
