"""Inbound webhook repository."""

from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hookgate.db.models.inbound_webhook import InboundWebhookRow
from hookgate.models.enums import WebhookStatus
from hookgate.repositories.base import BaseRepository


class WebhookRepository(BaseRepository[InboundWebhookRow]):
    def __init__(self, session: AsyncSession):
        super().__init__(session, InboundWebhookRow)

    async def get(self, webhook_id: int) -> InboundWebhookRow | None:
        return await self.session.get(InboundWebhookRow, webhook_id)

    async def get_by_uuid(self, webhook_uuid: str) -> InboundWebhookRow | None:
        return await self.get_by_field("uuid", webhook_uuid)

    async def find(self, identifier: str) -> InboundWebhookRow | None:
        """Look up by uuid, falling back to the numeric primary key."""
        conditions = [InboundWebhookRow.uuid == identifier]
        if identifier.isdigit():
            conditions.append(InboundWebhookRow.id == int(identifier))
        stmt = select(InboundWebhookRow).where(or_(*conditions)).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create_pending(
        self,
        provider: str,
        event_type: str | None,
        external_id: str | None,
        headers: dict[str, str],
        payload: Any,
    ) -> InboundWebhookRow:
        return await self.create(
            provider=provider,
            event_type=event_type,
            external_id=external_id,
            headers=headers,
            payload=payload,
            status=WebhookStatus.PENDING.value,
            attempts=0,
        )

    async def list_recent(
        self,
        provider: str | None = None,
        status: WebhookStatus | None = None,
        event_type: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[InboundWebhookRow]:
        stmt = select(InboundWebhookRow)
        if provider:
            stmt = stmt.where(InboundWebhookRow.provider == provider)
        if status:
            stmt = stmt.where(InboundWebhookRow.status == status.value)
        if event_type:
            stmt = stmt.where(InboundWebhookRow.event_type == event_type)
        stmt = stmt.order_by(InboundWebhookRow.id.desc()).limit(limit).offset(offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Lifecycle transitions: each one is flushed immediately.

    async def begin_processing(self, row: InboundWebhookRow) -> InboundWebhookRow:
        row.mark_processing()
        await self.session.flush()
        return row

    async def complete_processing(self, row: InboundWebhookRow) -> InboundWebhookRow:
        row.mark_processed()
        await self.session.flush()
        return row

    async def fail_processing(self, row: InboundWebhookRow, error_message: str) -> InboundWebhookRow:
        row.mark_failed(error_message)
        await self.session.flush()
        return row

    async def reset_for_retry(self, row: InboundWebhookRow) -> InboundWebhookRow:
        row.reset_for_retry()
        await self.session.flush()
        return row

    # Retention

    @staticmethod
    def _prunable_conditions(
        days: int,
        status: WebhookStatus | None = None,
        provider: str | None = None,
        now: datetime | None = None,
    ) -> list:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        conditions = [InboundWebhookRow.created_at < cutoff]
        if status:
            conditions.append(InboundWebhookRow.status == status.value)
        if provider:
            conditions.append(InboundWebhookRow.provider == provider)
        return conditions

    async def count_older_than(
        self,
        days: int,
        status: WebhookStatus | None = None,
        provider: str | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(InboundWebhookRow).where(
            *self._prunable_conditions(days, status, provider)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def summarize_older_than(
        self,
        days: int,
        status: WebhookStatus | None = None,
        provider: str | None = None,
    ) -> list[tuple[str, str, int]]:
        """Return (provider, status, count) groups for records that would be pruned."""
        stmt = (
            select(InboundWebhookRow.provider, InboundWebhookRow.status, func.count())
            .where(*self._prunable_conditions(days, status, provider))
            .group_by(InboundWebhookRow.provider, InboundWebhookRow.status)
            .order_by(InboundWebhookRow.provider, InboundWebhookRow.status)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1], int(row[2])) for row in result.all()]

    async def delete_older_than(
        self,
        days: int,
        status: WebhookStatus | None = None,
        provider: str | None = None,
    ) -> int:
        stmt = delete(InboundWebhookRow).where(
            *self._prunable_conditions(days, status, provider)
        ).execution_options(synchronize_session=False)
        result = await self.session.execute(stmt)
        return int(result.rowcount or 0)
