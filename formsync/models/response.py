"""Pydantic models for stored responses and submission outcomes."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResponseStatus:
    ACTIVE = "active"
    DELETED_EXTERNALLY = "deletedExternally"

    ALL = frozenset({ACTIVE, DELETED_EXTERNALLY})


class StoredResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    form_id: str = Field(alias="formId")
    external_record_id: str = Field(alias="externalRecordId")
    answers: Dict[str, Any] = Field(default_factory=dict)
    status: str = ResponseStatus.ACTIVE
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class FieldError(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_key: str = Field(alias="questionKey")
    message: str


class SubmissionRequest(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)


class SubmissionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response_id: str = Field(alias="responseId")
    external_record_id: str = Field(alias="externalRecordId")
    message: str = "Response submitted successfully"


class EvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    answers: Dict[str, Any] = Field(default_factory=dict, alias="answersSoFar")


class SubscriptionHealth(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(alias="subscriptionId")
    running: bool = False
    last_success_at: Optional[str] = Field(default=None, alias="lastSuccessAt")
    last_error: Optional[str] = Field(default=None, alias="lastError")
    last_error_at: Optional[str] = Field(default=None, alias="lastErrorAt")
    consecutive_failures: int = Field(default=0, alias="consecutiveFailures")
    batches_applied: int = Field(default=0, alias="batchesApplied")


__all__ = [
    "ResponseStatus",
    "StoredResponse",
    "FieldError",
    "SubmissionRequest",
    "SubmissionResult",
    "EvaluateRequest",
    "SubscriptionHealth",
]
