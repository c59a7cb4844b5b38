"""Retention pruning and manual replay of stored webhooks."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from hookgate.errors.exceptions import AlreadyProcessedError, NotFoundError, ValidationError
from hookgate.models.enums import WebhookStatus
from hookgate.models.webhook import PruneResult, PruneSummaryRow, ReplayResult
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.workers.delivery import DeliveryPipeline
from hookgate.workers.queue import DeliveryJob, DeliveryQueue

logger = logging.getLogger(__name__)


async def prune_webhooks(
    session: AsyncSession,
    days: int | None,
    status: WebhookStatus | None = None,
    provider: str | None = None,
    dry_run: bool = False,
) -> PruneResult:
    """Delete webhooks created more than ``days`` days ago.

    ``days=None`` means records are kept forever and nothing is touched. A dry
    run reports what would go, grouped by provider and status.
    """
    if days is None:
        logger.info("Retention is disabled, nothing to prune")
        return PruneResult(days=None, matched=0, deleted=0, dry_run=dry_run)
    if days < 0:
        raise ValidationError("Retention days must be zero or greater", {"days": days})

    repo = WebhookRepository(session)
    summary = [
        PruneSummaryRow(provider=row_provider, status=row_status, count=count)
        for row_provider, row_status, count in await repo.summarize_older_than(days, status, provider)
    ]
    matched = sum(row.count for row in summary)

    if dry_run or matched == 0:
        return PruneResult(days=days, matched=matched, deleted=0, dry_run=dry_run, summary=summary)

    deleted = await repo.delete_older_than(days, status, provider)
    await session.commit()
    logger.info("Pruned %d webhooks older than %d days", deleted, days)
    return PruneResult(days=days, matched=matched, deleted=deleted, dry_run=False, summary=summary)


async def replay_webhook(
    session: AsyncSession,
    identifier: str,
    pipeline: DeliveryPipeline,
    queue: DeliveryQueue,
    force: bool = False,
    sync: bool = False,
) -> ReplayResult:
    """Reset a stored webhook to pending and run it again.

    With ``sync`` the pipeline runs inline and its errors propagate; otherwise
    a fresh delivery job is queued. Processed webhooks need ``force``.
    """
    repo = WebhookRepository(session)
    webhook = await repo.find(str(identifier))
    if webhook is None:
        raise NotFoundError("Webhook", str(identifier))

    if webhook.is_processed() and not force:
        raise AlreadyProcessedError(webhook.uuid)

    await repo.reset_for_retry(webhook)
    await session.commit()
    logger.info("Replaying webhook %s (provider=%s, sync=%s)", webhook.uuid, webhook.provider, sync)

    if sync:
        await pipeline.run(session, webhook)
        queued = False
    else:
        await queue.enqueue(DeliveryJob(webhook_id=webhook.id))
        queued = True

    return ReplayResult(
        uuid=webhook.uuid,
        status=webhook.status,
        attempts=webhook.attempts,
        queued=queued,
    )
