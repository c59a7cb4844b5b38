"""Delivery worker: turns pipeline results into retry decisions and drains the queue."""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from hookgate.logging_config import bind_delivery_context, clear_request_context
from hookgate.models.enums import DeliveryResult
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.workers.delivery import DeliveryPipeline, describe_exception
from hookgate.workers.queue import DeliveryJob, DeliveryQueue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff: tuple[int, ...] = (10, 60, 300)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay_for(self, attempt: int) -> int:
        """Delay before the attempt following ``attempt``; the last step repeats."""
        if not self.backoff:
            return 0
        return self.backoff[min(max(attempt, 1) - 1, len(self.backoff) - 1)]


@dataclass
class DeliveryOutcome:
    result: DeliveryResult
    job: DeliveryJob
    delay: int = 0
    error: str | None = None


class DeliveryWorker:
    """Runs one delivery job and reports what the queue should do next."""

    def __init__(self, pipeline: DeliveryPipeline, retry_policy: RetryPolicy | None = None):
        self.pipeline = pipeline
        self.retry_policy = retry_policy or RetryPolicy()

    async def execute(self, session: AsyncSession, job: DeliveryJob) -> DeliveryOutcome:
        repo = WebhookRepository(session)
        webhook = await repo.get(job.webhook_id)
        if webhook is None:
            logger.warning("Webhook %d no longer exists, discarding job %s", job.webhook_id, job.job_id)
            return DeliveryOutcome(DeliveryResult.DISCARDED, job)
        if webhook.is_processed():
            logger.info("Webhook %s already processed, skipping job %s", webhook.uuid, job.job_id)
            return DeliveryOutcome(DeliveryResult.DISCARDED, job)

        bind_delivery_context(webhook.uuid, webhook.provider, job.attempt)
        if webhook.is_failed():
            await repo.reset_for_retry(webhook)
        try:
            await self.pipeline.run(session, webhook)
        except Exception as exc:
            message = describe_exception(exc)
            if self.retry_policy.should_retry(job.attempt):
                delay = self.retry_policy.delay_for(job.attempt)
                logger.warning(
                    "Delivery of webhook %s failed (attempt %d/%d), retrying in %ds",
                    webhook.uuid, job.attempt, self.retry_policy.max_attempts, delay,
                )
                return DeliveryOutcome(DeliveryResult.RETRY, job, delay=delay, error=message)

            await self.pipeline.fail_terminal(session, webhook, exc)
            return DeliveryOutcome(DeliveryResult.FAILED, job, error=message)

        return DeliveryOutcome(DeliveryResult.DELIVERED, job)


async def process_next(queue: DeliveryQueue, session_factory, worker: DeliveryWorker) -> DeliveryOutcome | None:
    """Run the next due job, if any. Returns None when the queue had nothing due."""
    job = await queue.dequeue()
    if job is None:
        return None

    try:
        async with session_factory() as session:
            outcome = await worker.execute(session, job)
    except Exception as exc:
        # Storage errors before the pipeline could record anything
        logger.exception("Delivery job %s crashed", job.job_id)
        policy = worker.retry_policy
        if policy.should_retry(job.attempt):
            outcome = DeliveryOutcome(
                DeliveryResult.RETRY, job, delay=policy.delay_for(job.attempt), error=describe_exception(exc)
            )
        else:
            outcome = DeliveryOutcome(DeliveryResult.FAILED, job, error=describe_exception(exc))
    finally:
        clear_request_context()

    if outcome.result == DeliveryResult.RETRY:
        await queue.enqueue(job.retry_after(outcome.delay))
    return outcome


async def run_worker(queue: DeliveryQueue, session_factory, worker: DeliveryWorker, poll_interval: float = 1.0, name: str = "worker-0") -> None:
    """Background task that drains the delivery queue until cancelled."""
    logger.info("Delivery %s started (poll_interval=%.1fs)", name, poll_interval)

    while True:
        try:
            outcome = await process_next(queue, session_factory, worker)
            if outcome is None:
                await asyncio.sleep(poll_interval)
        except asyncio.CancelledError:
            logger.info("Delivery %s stopped", name)
            break
        except Exception as exc:
            logger.exception("Delivery %s error: %s", name, exc)
            await asyncio.sleep(poll_interval)
