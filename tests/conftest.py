"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hookgate.config import Settings
from hookgate.db.base import Base
# Import all models to register with Base.metadata
import hookgate.db.models  # noqa: F401
from hookgate.errors.reporting import LoggingErrorReporter
from hookgate.events.bus import EventBus
from hookgate.runtime import build_runtime
from hookgate.workers.queue import InMemoryDeliveryQueue

STRIPE_SECRET = "whsec_test_secret"
GITHUB_SECRET = "github-test-secret"
SLACK_SECRET = "slack-test-secret"
TWILIO_TOKEN = "twilio-test-token"
ACME_SECRET = "acme-test-secret"


class RecordingErrorReporter(LoggingErrorReporter):
    """Keeps reported exceptions for assertions."""

    def __init__(self):
        self.reported: list[tuple[BaseException, dict]] = []

    def report(self, exc, **context):
        self.reported.append((exc, context))
        super().report(exc, **context)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        local_mode=True,
        stripe_webhook_secret=STRIPE_SECRET,
        github_webhook_secret=GITHUB_SECRET,
        slack_signing_secret=SLACK_SECRET,
        twilio_auth_token=TWILIO_TOKEN,
        providers={
            "acme": {
                "driver": "hmac",
                "secret": ACME_SECRET,
                "header": "X-Acme-Signature",
                "prefix": "sha256=",
                "event_header": "X-Acme-Event",
            },
        },
        run_worker_in_process=False,
        retention_days=30,
    )


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def delivery_queue():
    return InMemoryDeliveryQueue()


@pytest.fixture
def error_reporter():
    return RecordingErrorReporter()


@pytest.fixture
def runtime(settings, db_engine, event_bus, delivery_queue, error_reporter):
    return build_runtime(
        settings,
        engine=db_engine,
        event_bus=event_bus,
        queue=delivery_queue,
        error_reporter=error_reporter,
    )


@pytest.fixture
def app(settings, runtime):
    """Create a test application instance with in-memory DB and queue."""
    from hookgate.main import create_app

    _app = create_app(settings)
    runtime.install(_app)
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
