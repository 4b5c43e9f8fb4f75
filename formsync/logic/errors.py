"""Domain exception taxonomy.

Route handlers never build error payloads for these by hand; the handlers in
`formsync.http.problem` map each class to a problem+json response.
"""

from __future__ import annotations

from typing import Iterable, List

from formsync.models.response import FieldError


class FormsyncError(Exception):
    pass


class SubmissionValidationError(FormsyncError):
    """Accumulated per-question validation failures for one submission."""

    def __init__(self, errors: Iterable[FieldError]) -> None:
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))


class ExternalApiError(FormsyncError):
    """A record-store call failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(FormsyncError):
    """Malformed form or rule definition, rejected at authoring time."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems: List[str] = list(problems)
        super().__init__("; ".join(self.problems))


class StateConflict(FormsyncError):
    """Transition requested from a state that does not allow it."""

    def __init__(self, current: str, target: str) -> None:
        self.current = current
        self.target = target
        super().__init__(f"cannot transition {current} -> {target}")


class NotFoundError(FormsyncError):
    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class InvalidStateError(FormsyncError):
    """Request is well-formed but the target resource cannot accept it (e.g. unpublished form)."""


__all__ = [
    "FormsyncError",
    "SubmissionValidationError",
    "ExternalApiError",
    "ConfigurationError",
    "StateConflict",
    "NotFoundError",
    "InvalidStateError",
]
