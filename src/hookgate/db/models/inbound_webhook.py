"""Inbound webhook table and its processing state machine."""

import uuid as uuid_lib
from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hookgate.db.base import Base, TimestampMixin, utcnow
from hookgate.models.enums import WebhookStatus


def _new_uuid() -> str:
    return str(uuid_lib.uuid4())


class InboundWebhookRow(Base, TimestampMixin):
    """One received webhook.

    Status transitions only go through the ``mark_*`` / ``reset_for_retry``
    methods; callers flush and commit after each one.
    """

    __tablename__ = "inbound_webhooks"
    __table_args__ = (
        Index("ix_inbound_webhooks_provider_status_created", "provider", "status", "created_at"),
        Index("ix_inbound_webhooks_provider_event_created", "provider", "event_type", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uuid: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_new_uuid)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    event_type: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    external_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    headers: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    payload: Mapped[dict | list | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WebhookStatus.PENDING.value, index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def event_identifier(self) -> str:
        """Key used by the event mapping table."""
        return f"{self.provider}.{self.event_type}"

    def is_pending(self) -> bool:
        return self.status == WebhookStatus.PENDING

    def is_processing(self) -> bool:
        return self.status == WebhookStatus.PROCESSING

    def is_processed(self) -> bool:
        return self.status == WebhookStatus.PROCESSED

    def is_failed(self) -> bool:
        return self.status == WebhookStatus.FAILED

    def mark_processing(self) -> None:
        self.status = WebhookStatus.PROCESSING.value
        self.attempts = (self.attempts or 0) + 1

    def mark_processed(self) -> None:
        self.status = WebhookStatus.PROCESSED.value
        self.processed_at = utcnow()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        self.status = WebhookStatus.FAILED.value
        self.error_message = error_message

    def reset_for_retry(self) -> None:
        self.status = WebhookStatus.PENDING.value
        self.error_message = None
