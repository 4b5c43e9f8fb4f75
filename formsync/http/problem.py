"""Problem+JSON rendering and exception handlers.

Every error leaving the API is an RFC 7807 `application/problem+json` body
with a stable `code`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from formsync.logic.errors import (
    ConfigurationError,
    ExternalApiError,
    InvalidStateError,
    NotFoundError,
    SubmissionValidationError,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem(status: int, title: str, detail: str, code: str, **extra: Any) -> JSONResponse:
    body: Dict[str, Any] = {"title": title, "status": status, "detail": detail, "code": code}
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_submission_validation_error(request: Request, exc: SubmissionValidationError) -> JSONResponse:
    return problem(
        400,
        "Validation Failed",
        "One or more answers are invalid",
        "SUBMISSION_INVALID",
        errors=[e.model_dump(by_alias=True) for e in exc.errors],
    )


async def handle_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    return problem(422, "Invalid Form Definition", "Form definition rejected", "FORM_DEFINITION_INVALID", errors=exc.problems)


async def handle_external_api_error(request: Request, exc: ExternalApiError) -> JSONResponse:
    # Upstream details stay in the log; respondents get a generic message
    logger.error("external_api_error path=%s error=%s", request.url.path, exc)
    return problem(502, "Bad Gateway", "Failed to submit form", "EXTERNAL_API_FAILED")


async def handle_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return problem(404, "Not Found", str(exc), f"{exc.resource.upper()}_NOT_FOUND")


async def handle_invalid_state(request: Request, exc: InvalidStateError) -> JSONResponse:
    return problem(409, "Conflict", str(exc), "INVALID_STATE")


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        body = dict(exc.detail)
        body.setdefault("status", exc.status_code)
        return JSONResponse(body, status_code=exc.status_code, media_type=PROBLEM_MEDIA_TYPE, headers=exc.headers)
    return JSONResponse(
        {"title": "Error", "status": exc.status_code, "detail": str(exc.detail)},
        status_code=exc.status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=exc.headers,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request_validation_failed path=%s errors=%s", request.url.path, len(exc.errors()))
    return JSONResponse(
        {
            "title": "Invalid Request",
            "status": 422,
            "detail": "Request validation failed",
            "code": "REQUEST_INVALID",
            "errors": jsonable_errors(exc),
        },
        status_code=422,
        media_type=PROBLEM_MEDIA_TYPE,
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SubmissionValidationError, handle_submission_validation_error)
    app.add_exception_handler(ConfigurationError, handle_configuration_error)
    app.add_exception_handler(ExternalApiError, handle_external_api_error)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(InvalidStateError, handle_invalid_state)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "register_exception_handlers",
]
