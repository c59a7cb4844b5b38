"""Delivery job queue using Redis or in-process fallback."""

import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import asdict, dataclass, field, replace

logger = logging.getLogger(__name__)


def _job_id() -> str:
    return f"dlv_{uuid.uuid4().hex[:16]}"


@dataclass(frozen=True)
class DeliveryJob:
    """One delivery attempt of a stored webhook.

    ``attempt`` counts queue attempts (1-based) and drives the retry policy;
    the record's own ``attempts`` column counts pipeline runs.
    """

    webhook_id: int
    attempt: int = 1
    not_before: float = 0.0
    job_id: str = field(default_factory=_job_id)

    def retry_after(self, delay: float, now: float | None = None) -> "DeliveryJob":
        return replace(self, attempt=self.attempt + 1, not_before=(time.time() if now is None else now) + delay)

    def to_json(self) -> str:
        return json.dumps(asdict(self), separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str | bytes) -> "DeliveryJob":
        return cls(**json.loads(raw))


class DeliveryQueue(ABC):
    @abstractmethod
    async def enqueue(self, job: DeliveryJob) -> None:
        ...

    @abstractmethod
    async def dequeue(self) -> DeliveryJob | None:
        """Pop the next job whose ``not_before`` has passed, if any."""
        ...

    @abstractmethod
    async def size(self) -> int:
        ...


class InMemoryDeliveryQueue(DeliveryQueue):
    """Process-local queue for local mode and tests."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._jobs: list[DeliveryJob] = []
        self._clock = clock

    async def enqueue(self, job: DeliveryJob) -> None:
        self._jobs.append(job)

    async def dequeue(self) -> DeliveryJob | None:
        now = self._clock()
        for index, job in enumerate(self._jobs):
            if job.not_before <= now:
                return self._jobs.pop(index)
        return None

    async def size(self) -> int:
        return len(self._jobs)

    def jobs(self) -> list[DeliveryJob]:
        return list(self._jobs)


class RedisDeliveryQueue(DeliveryQueue):
    """Ready jobs in a list, delayed retries in a sorted set scored by due time."""

    def __init__(self, redis, queue_name: str = "webhooks", clock: Callable[[], float] = time.time) -> None:
        self.redis = redis
        self.ready_key = f"hookgate:deliveries:{queue_name}"
        self.delayed_key = f"{self.ready_key}:delayed"
        self._clock = clock

    async def enqueue(self, job: DeliveryJob) -> None:
        if job.not_before > self._clock():
            await self.redis.zadd(self.delayed_key, {job.to_json(): job.not_before})
        else:
            await self.redis.rpush(self.ready_key, job.to_json())

    async def dequeue(self) -> DeliveryJob | None:
        await self._promote_due()
        raw = await self.redis.lpop(self.ready_key)
        if raw is None:
            return None
        return DeliveryJob.from_json(raw)

    async def size(self) -> int:
        return int(await self.redis.llen(self.ready_key)) + int(await self.redis.zcard(self.delayed_key))

    async def _promote_due(self) -> None:
        due = await self.redis.zrangebyscore(self.delayed_key, "-inf", self._clock())
        for raw in due:
            # zrem succeeds for exactly one competing worker
            if await self.redis.zrem(self.delayed_key, raw):
                await self.redis.rpush(self.ready_key, raw)
                logger.debug("Promoted delayed delivery job to %s", self.ready_key)
