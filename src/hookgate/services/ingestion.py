"""Ingestion boundary: verify, store, enqueue, acknowledge."""

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from hookgate.db.models.inbound_webhook import InboundWebhookRow
from hookgate.drivers.base import BaseDriver, InboundRequest
from hookgate.drivers.registry import DriverRegistry
from hookgate.errors.exceptions import SignatureError, UnknownProviderError
from hookgate.errors.reporting import ErrorReporter
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.workers.queue import DeliveryJob, DeliveryQueue

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)
    webhook: InboundWebhookRow | None = None


class WebhookIngestor:
    """Accepts one inbound webhook per call.

    Nothing is stored unless the signature checks out, and the provider gets
    its acknowledgement as soon as the record is committed and queued.
    """

    def __init__(
        self,
        registry: DriverRegistry,
        queue: DeliveryQueue,
        error_reporter: ErrorReporter,
        store_payload: bool = True,
    ):
        self.registry = registry
        self.queue = queue
        self.error_reporter = error_reporter
        self.store_payload = store_payload

    async def handle(self, session: AsyncSession, provider: str, request: InboundRequest) -> IngestResult:
        try:
            driver = self.registry.driver(provider)
            driver.validate(request)

            challenge = driver.challenge_response(request)
            if challenge is not None:
                logger.info("Answered %s verification challenge", provider)
                return IngestResult(200, challenge)

            webhook = await self._store(session, provider, driver, request)
            await self._enqueue(session, webhook)
        except SignatureError as exc:
            self.error_reporter.report(exc, provider=provider)
            return IngestResult(401, {"error": "Invalid signature"})
        except UnknownProviderError as exc:
            logger.info("Rejected webhook for unknown provider %s: %s", provider, exc.message)
            return IngestResult(404, {"error": "Unknown provider"})
        except Exception as exc:
            await session.rollback()
            self.error_reporter.report(exc, provider=provider)
            return IngestResult(500, {"error": "Internal error"})

        return IngestResult(200, {"status": "received", "id": webhook.uuid}, webhook)

    async def _store(
        self, session: AsyncSession, provider: str, driver: BaseDriver, request: InboundRequest
    ) -> InboundWebhookRow:
        event = driver.extract(request)
        webhook = await WebhookRepository(session).create_pending(
            provider=provider,
            event_type=event.event_type,
            external_id=event.external_id,
            headers=event.headers,
            payload=event.payload if self.store_payload else None,
        )
        await session.commit()
        logger.info(
            "Stored webhook %s (provider=%s, event=%s, external_id=%s)",
            webhook.uuid, provider, event.event_type, event.external_id,
        )
        return webhook

    async def _enqueue(self, session: AsyncSession, webhook: InboundWebhookRow) -> None:
        try:
            await self.queue.enqueue(DeliveryJob(webhook_id=webhook.id))
        except Exception:
            # The provider will resend after a 500; drop our copy so it is not stored twice.
            await session.delete(webhook)
            await session.commit()
            raise
