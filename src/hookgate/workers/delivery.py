"""Delivery pipeline: runs one processing attempt of a stored webhook."""

import logging
from collections.abc import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hookgate.db.models.inbound_webhook import InboundWebhookRow
from hookgate.events.bus import EventBus
from hookgate.events.signals import WebhookFailed, WebhookProcessed, WebhookReceived
from hookgate.repositories.webhook_repo import WebhookRepository

logger = logging.getLogger(__name__)


def describe_exception(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class DeliveryPipeline:
    """Move a webhook through processing -> processed / failed around its signals.

    Each transition is committed before the next step so the stored status is
    always the source of truth for replay and pruning.
    """

    def __init__(self, event_bus: EventBus, event_map: Mapping[str, str] | None = None):
        self.event_bus = event_bus
        self.event_map = dict(event_map or {})

    def mapped_signal_type(self, webhook: InboundWebhookRow) -> type | None:
        """Specialised signal configured for ``provider.event_type``, if any.

        Raises LookupError when the mapping points at an unknown type.
        """
        identifier = self.event_map.get(webhook.event_identifier)
        if identifier is None:
            return None
        return self.event_bus.resolve_signal_type(identifier)

    async def run(self, session: AsyncSession, webhook: InboundWebhookRow) -> InboundWebhookRow:
        """Run one attempt. Failures are recorded on the webhook, then re-raised."""
        repo = WebhookRepository(session)
        await repo.begin_processing(webhook)
        await session.commit()
        logger.info(
            "Processing webhook %s (provider=%s, event=%s, attempt=%d)",
            webhook.uuid, webhook.provider, webhook.event_type, webhook.attempts,
        )

        try:
            await self.event_bus.dispatch(WebhookReceived(webhook))

            signal_type = self.mapped_signal_type(webhook)
            if signal_type is not None:
                await self.event_bus.dispatch(signal_type(webhook))

            await repo.complete_processing(webhook)
            await session.commit()
            await self.event_bus.dispatch(WebhookProcessed(webhook))
        except Exception as exc:
            logger.warning("Webhook %s failed: %s", webhook.uuid, describe_exception(exc))
            await self._record_failure(session, webhook, exc)
            await self._emit_failed(webhook, exc)
            raise

        logger.info("Webhook %s processed", webhook.uuid)
        return webhook

    async def fail_terminal(self, session: AsyncSession, webhook: InboundWebhookRow, exc: BaseException) -> None:
        """Leave the webhook failed after its final attempt. Never raises."""
        message = describe_exception(exc)
        try:
            already_recorded = webhook.is_failed() and webhook.error_message == message
            await self._record_failure(session, webhook, exc)
            if not already_recorded:
                await self._emit_failed(webhook, exc)
        except Exception:
            logger.exception("Could not finalise failed webhook %s", webhook.uuid)
        else:
            logger.error(
                "Webhook %s failed permanently after %d attempts: %s",
                webhook.uuid, webhook.attempts, message,
            )

    async def _record_failure(self, session: AsyncSession, webhook: InboundWebhookRow, exc: BaseException) -> None:
        repo = WebhookRepository(session)
        try:
            if isinstance(exc, SQLAlchemyError):
                await session.rollback()
                await repo.refresh(webhook)
            await repo.fail_processing(webhook, describe_exception(exc))
            await session.commit()
        except SQLAlchemyError:
            logger.exception("Could not record failure for webhook %s", webhook.uuid)

    async def _emit_failed(self, webhook: InboundWebhookRow, exc: BaseException) -> None:
        try:
            await self.event_bus.dispatch(WebhookFailed(webhook, exc))
        except Exception:
            logger.exception("WebhookFailed listener raised for webhook %s", webhook.uuid)
