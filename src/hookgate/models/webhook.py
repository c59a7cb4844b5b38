"""Pydantic models for inbound webhook records and admin operations."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hookgate.models.enums import WebhookStatus


class InboundWebhookModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: str
    provider: str
    event_type: str | None = None
    external_id: str | None = None
    headers: dict[str, str] | None = None
    payload: dict[str, Any] | list[Any] | None = None
    status: WebhookStatus
    error_message: str | None = None
    attempts: int
    processed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PruneRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    days: int | None = Field(None, ge=0)
    status: WebhookStatus | None = None
    provider: str | None = None
    dry_run: bool = False


class PruneSummaryRow(BaseModel):
    provider: str
    status: WebhookStatus
    count: int


class PruneResult(BaseModel):
    days: int | None
    matched: int
    deleted: int
    dry_run: bool
    summary: list[PruneSummaryRow] = Field(default_factory=list)


class ReplayRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    force: bool = False
    sync: bool = False


class ReplayResult(BaseModel):
    uuid: str
    status: WebhookStatus
    attempts: int
    queued: bool
    error: str | None = None
