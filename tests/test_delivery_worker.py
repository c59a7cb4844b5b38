"""Retry policy, delivery worker outcomes and the queue backends."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookgate.events.bus import EventBus
from hookgate.events.signals import WebhookFailed, WebhookReceived
from hookgate.models.enums import DeliveryResult, WebhookStatus
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.workers.delivery import DeliveryPipeline
from hookgate.workers.queue import DeliveryJob, InMemoryDeliveryQueue, RedisDeliveryQueue
from hookgate.workers.runner import DeliveryWorker, RetryPolicy, process_next


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class FakeRedis:
    """Just the list and sorted-set commands the delivery queue uses."""

    def __init__(self):
        self.lists: dict[str, list[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    async def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)

    async def lpop(self, key):
        items = self.lists.get(key) or []
        return items.pop(0) if items else None

    async def llen(self, key):
        return len(self.lists.get(key, []))

    async def zadd(self, key, mapping):
        self.zsets.setdefault(key, {}).update(mapping)

    async def zrangebyscore(self, key, low, high):
        members = self.zsets.get(key, {})
        return [m for m, score in sorted(members.items(), key=lambda kv: kv[1]) if score <= high]

    async def zrem(self, key, member):
        return 1 if self.zsets.get(key, {}).pop(member, None) is not None else 0

    async def zcard(self, key):
        return len(self.zsets.get(key, {}))


def test_retry_policy_backoff_steps():
    policy = RetryPolicy(max_attempts=5, backoff=(10, 60, 300))
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [10, 60, 300, 300]
    assert policy.should_retry(4)
    assert not policy.should_retry(5)


def test_retry_policy_defaults():
    policy = RetryPolicy()
    assert policy.max_attempts == 3
    assert policy.delay_for(1) == 10
    assert RetryPolicy(backoff=()).delay_for(2) == 0


@pytest.mark.asyncio
async def test_in_memory_queue_respects_not_before():
    clock = FakeClock()
    queue = InMemoryDeliveryQueue(clock=clock)
    await queue.enqueue(DeliveryJob(webhook_id=1, not_before=1010))
    await queue.enqueue(DeliveryJob(webhook_id=2))

    assert (await queue.dequeue()).webhook_id == 2
    assert await queue.dequeue() is None
    clock.now = 1010
    assert (await queue.dequeue()).webhook_id == 1
    assert await queue.size() == 0


@pytest.mark.asyncio
async def test_redis_queue_delays_and_promotes_jobs():
    clock = FakeClock()
    redis = FakeRedis()
    queue = RedisDeliveryQueue(redis, "test", clock=clock)

    await queue.enqueue(DeliveryJob(webhook_id=1))
    await queue.enqueue(DeliveryJob(webhook_id=2, attempt=2, not_before=1060))
    assert await queue.size() == 2
    assert redis.lists["hookgate:deliveries:test"]

    assert (await queue.dequeue()).webhook_id == 1
    assert await queue.dequeue() is None

    clock.now = 1060
    job = await queue.dequeue()
    assert (job.webhook_id, job.attempt) == (2, 2)
    assert await queue.size() == 0


def test_job_json_round_trip_and_retry():
    job = DeliveryJob(webhook_id=7)
    assert DeliveryJob.from_json(job.to_json()) == job
    retry = job.retry_after(60, now=100.0)
    assert (retry.attempt, retry.not_before, retry.job_id) == (2, 160.0, job.job_id)


async def _pending(db_session):
    row = await WebhookRepository(db_session).create_pending("github", "push", "d-1", {}, {})
    await db_session.commit()
    return row


def _failing_bus(failures):
    bus = EventBus()

    def explode(signal):
        raise RuntimeError("downstream unavailable")

    bus.subscribe(WebhookReceived, explode)
    bus.subscribe(WebhookFailed, lambda signal: failures.append(signal.webhook.error_message))
    return bus


@pytest.mark.asyncio
async def test_worker_delivers(db_session):
    webhook = await _pending(db_session)
    worker = DeliveryWorker(DeliveryPipeline(EventBus()))

    outcome = await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id))

    assert outcome.result == DeliveryResult.DELIVERED
    assert webhook.status == WebhookStatus.PROCESSED


@pytest.mark.asyncio
async def test_worker_asks_for_retry_then_fails_terminally(db_session):
    failures = []
    webhook = await _pending(db_session)
    worker = DeliveryWorker(DeliveryPipeline(_failing_bus(failures)), RetryPolicy(max_attempts=3))

    first = await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id, attempt=1))
    assert (first.result, first.delay, first.error) == (DeliveryResult.RETRY, 10, "downstream unavailable")
    assert webhook.status == WebhookStatus.FAILED

    second = await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id, attempt=2))
    assert (second.result, second.delay) == (DeliveryResult.RETRY, 60)

    last = await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id, attempt=3))
    assert last.result == DeliveryResult.FAILED
    assert webhook.status == WebhookStatus.FAILED
    assert webhook.error_message == "downstream unavailable"
    assert webhook.attempts == 3
    assert len(failures) == 3


@pytest.mark.asyncio
async def test_worker_discards_jobs_for_deleted_webhooks(db_session):
    outcome = await DeliveryWorker(DeliveryPipeline(EventBus())).execute(db_session, DeliveryJob(webhook_id=404))
    assert outcome.result == DeliveryResult.DISCARDED


@pytest.mark.asyncio
async def test_process_next_requeues_with_backoff(db_engine, db_session):
    failures = []
    webhook = await _pending(db_session)
    clock = FakeClock(now=0.0)
    queue = InMemoryDeliveryQueue(clock=clock)
    await queue.enqueue(DeliveryJob(webhook_id=webhook.id))
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    worker = DeliveryWorker(DeliveryPipeline(_failing_bus(failures)), RetryPolicy(max_attempts=2, backoff=(30,)))

    outcome = await process_next(queue, session_factory, worker)
    assert outcome.result == DeliveryResult.RETRY
    [queued] = queue.jobs()
    assert queued.attempt == 2
    assert queued.not_before >= 30

    assert await process_next(queue, session_factory, worker) is None

    clock.now = queued.not_before
    outcome = await process_next(queue, session_factory, worker)
    assert outcome.result == DeliveryResult.FAILED
    assert await queue.size() == 0


@pytest.mark.asyncio
async def test_process_next_on_empty_queue(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    worker = DeliveryWorker(DeliveryPipeline(EventBus()))
    assert await process_next(InMemoryDeliveryQueue(), session_factory, worker) is None


@pytest.mark.asyncio
async def test_worker_skips_already_processed_webhooks(db_session):
    calls = []
    bus = EventBus()
    bus.subscribe(WebhookReceived, calls.append)
    webhook = await _pending(db_session)
    worker = DeliveryWorker(DeliveryPipeline(bus))

    await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id))
    duplicate = await worker.execute(db_session, DeliveryJob(webhook_id=webhook.id))

    assert duplicate.result == DeliveryResult.DISCARDED
    assert len(calls) == 1
    assert webhook.attempts == 1
