"""FastAPI application factory and lifespan management."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hookgate.config import Settings, settings as default_settings
from hookgate.logging_config import configure_logging
from hookgate.runtime import build_runtime, prepare_database

# Configure logging at import time
configure_logging(log_level=default_settings.log_level, json_output=not default_settings.local_mode)

logger = logging.getLogger(__name__)


def start_background_tasks(runtime) -> list[asyncio.Task]:
    """Start in-process delivery workers and the retention pruner."""
    from hookgate.workers.runner import run_worker
    from hookgate.workers.scheduler import run_retention_pruner

    settings = runtime.settings
    tasks: list[asyncio.Task] = []
    if settings.run_worker_in_process:
        for index in range(max(settings.worker_concurrency, 1)):
            tasks.append(asyncio.create_task(run_worker(
                runtime.queue,
                runtime.session_factory,
                runtime.worker,
                poll_interval=settings.worker_poll_interval,
                name=f"worker-{index}",
            )))
    if settings.retention_days is not None:
        tasks.append(asyncio.create_task(run_retention_pruner(
            runtime.session_factory, settings.retention_days, settings.prune_interval,
        )))
    return tasks


async def stop_background_tasks(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        runtime = build_runtime(settings)
        await prepare_database(runtime)
        runtime.install(app)
        tasks = start_background_tasks(runtime)

        logger.info(
            "Hookgate started (db=%s, queue=%s, providers=%s)",
            "sqlite" if settings.local_mode else "postgresql",
            type(runtime.queue).__name__,
            ",".join(runtime.registry.providers()),
        )
        yield

        await stop_background_tasks(tasks)
        await runtime.close()
        logger.info("Hookgate shutdown complete")

    app = FastAPI(
        title="Hookgate",
        version="0.1.0",
        description="Verified inbound webhook receiver with queued, retried delivery.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    from hookgate.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    from hookgate.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    from hookgate.api.router import api_router, build_webhook_router
    app.include_router(api_router)
    app.include_router(build_webhook_router(settings.path))

    return app


app = create_app()
