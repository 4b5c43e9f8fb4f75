"""Wire models for the record store's change-notification feed.

Shapes follow the record store's webhook payload format: each payload groups
changes per table under `changedTablesById`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    current: Optional[Dict[str, Any]] = None
    previous: Optional[Dict[str, Any]] = None


class TableChanges(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    created_records_by_id: Dict[str, Any] = Field(default_factory=dict, alias="createdRecordsById")
    changed_records_by_id: Dict[str, RecordChange] = Field(default_factory=dict, alias="changedRecordsById")
    destroyed_record_ids: List[str] = Field(default_factory=list, alias="destroyedRecordIds")


class ChangePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    timestamp: Optional[str] = None
    base_transaction_number: Optional[int] = Field(default=None, alias="baseTransactionNumber")
    changed_tables_by_id: Dict[str, TableChanges] = Field(default_factory=dict, alias="changedTablesById")


class ChangeBatch(BaseModel):
    """One page of the change feed.

    `cursor` is opaque: it is persisted verbatim and handed back on the next
    fetch, never interpreted locally.
    """

    model_config = ConfigDict(populate_by_name=True)

    payloads: List[ChangePayload] = Field(default_factory=list)
    cursor: Optional[Any] = None
    might_have_more: bool = Field(default=False, alias="mightHaveMore")


class WebhookNotification(BaseModel):
    """Ping body delivered by the record store when new payloads exist."""

    model_config = ConfigDict(extra="allow")

    base: Dict[str, Any] = Field(default_factory=dict)
    webhook: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[str] = None


__all__ = [
    "RecordChange",
    "TableChanges",
    "ChangePayload",
    "ChangeBatch",
    "WebhookNotification",
]
