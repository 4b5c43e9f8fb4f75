"""Pydantic models for forms, questions and visibility rules."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from formsync.models.question_type import Combinator


ConditionValue = Union[str, List[str]]


class Condition(BaseModel):
    """Single comparison between a stored answer and a literal value.

    `operator` is kept as a free string: unknown operators are rejected by the
    authoring validator, not by the model, so stored rules always load.
    """

    model_config = ConfigDict(populate_by_name=True)

    target_key: str = Field(alias="targetKey")
    operator: str
    value: ConditionValue


class Rule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    combinator: str = Combinator.AND
    conditions: List[Condition] = Field(default_factory=list)


class Question(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str
    external_field_id: str = Field(alias="externalFieldId")
    external_field_name: str = Field(alias="externalFieldName")
    label: str
    type: str
    options: List[str] = Field(default_factory=list)
    required: bool = False
    visibility_rule: Optional[Rule] = Field(default=None, alias="visibilityRule")


class FormDefinition(BaseModel):
    """Editable part of a form as received from the form editor."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = "Untitled Form"
    description: str = ""
    external_store_id: str = Field(alias="externalStoreId")
    external_table_id: str = Field(alias="externalTableId")
    published: bool = False
    questions: List[Question] = Field(default_factory=list)


class FormUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    published: Optional[bool] = None
    questions: Optional[List[Question]] = None


class Form(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    external_store_id: str = Field(alias="externalStoreId")
    external_table_id: str = Field(alias="externalTableId")
    published: bool = False
    subscription_id: Optional[str] = Field(default=None, alias="subscriptionId")
    questions: List[Question] = Field(default_factory=list)
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")


class SubscriptionAttach(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(alias="subscriptionId", min_length=1)


__all__ = [
    "Condition",
    "ConditionValue",
    "Rule",
    "Question",
    "FormDefinition",
    "FormUpdate",
    "Form",
    "SubscriptionAttach",
]
