"""Wiring of the long-lived collaborators shared by the API, worker and CLI."""

import importlib
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hookgate.config import Settings
from hookgate.db.engine import create_all, create_db_engine, create_session_factory
from hookgate.drivers.registry import DriverRegistry
from hookgate.errors.reporting import ErrorReporter, LoggingErrorReporter
from hookgate.events.bus import EventBus, event_bus as default_event_bus
from hookgate.services.ingestion import WebhookIngestor
from hookgate.workers.delivery import DeliveryPipeline
from hookgate.workers.queue import DeliveryQueue, InMemoryDeliveryQueue, RedisDeliveryQueue
from hookgate.workers.runner import DeliveryWorker, RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    registry: DriverRegistry
    event_bus: EventBus
    pipeline: DeliveryPipeline
    queue: DeliveryQueue
    worker: DeliveryWorker
    ingestor: WebhookIngestor
    error_reporter: ErrorReporter
    redis: Any = None

    def install(self, app) -> None:
        """Expose the collaborators on ``app.state`` for request dependencies."""
        app.state.settings = self.settings
        app.state.db_engine = self.engine
        app.state.db_session_factory = self.session_factory
        app.state.redis = self.redis
        app.state.driver_registry = self.registry
        app.state.event_bus = self.event_bus
        app.state.pipeline = self.pipeline
        app.state.delivery_queue = self.queue
        app.state.delivery_worker = self.worker
        app.state.ingestor = self.ingestor
        app.state.error_reporter = self.error_reporter

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
        await self.engine.dispose()


def load_listener_modules(module_names: list[str]) -> None:
    for name in module_names:
        importlib.import_module(name)
        logger.info("Loaded listener module %s", name)


def build_runtime(
    settings: Settings,
    engine: AsyncEngine | None = None,
    event_bus: EventBus | None = None,
    queue: DeliveryQueue | None = None,
    error_reporter: ErrorReporter | None = None,
    redis: Any = None,
) -> Runtime:
    """Assemble a runtime from settings; any collaborator may be passed in instead."""
    engine = engine or create_db_engine(settings.effective_database_url)
    event_bus = event_bus or default_event_bus
    error_reporter = error_reporter or LoggingErrorReporter()

    if queue is None:
        if settings.local_mode:
            queue = InMemoryDeliveryQueue()
        else:
            if redis is None:
                import redis.asyncio as aioredis

                redis = aioredis.from_url(settings.redis_url, decode_responses=True)
            queue = RedisDeliveryQueue(redis, settings.queue_name)

    load_listener_modules(settings.listener_modules)

    registry = DriverRegistry(settings.provider_configs())
    pipeline = DeliveryPipeline(event_bus, settings.events)
    worker = DeliveryWorker(
        pipeline,
        RetryPolicy(max_attempts=settings.max_attempts, backoff=tuple(settings.backoff)),
    )
    ingestor = WebhookIngestor(registry, queue, error_reporter, store_payload=settings.store_payload)

    return Runtime(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        registry=registry,
        event_bus=event_bus,
        pipeline=pipeline,
        queue=queue,
        worker=worker,
        ingestor=ingestor,
        error_reporter=error_reporter,
        redis=redis,
    )


async def prepare_database(runtime: Runtime) -> None:
    """Create tables directly for SQLite (local mode has no Alembic migrations)."""
    if "sqlite" in str(runtime.engine.url):
        await create_all(runtime.engine)
        logger.info("SQLite tables created (local mode)")
