"""hookgate-server maintenance commands."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from hookgate import server_cli
from hookgate.db.base import Base, utcnow
from hookgate.events.bus import EventBus
from hookgate.events.signals import WebhookReceived
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.runtime import build_runtime
from hookgate.workers.queue import InMemoryDeliveryQueue


@pytest.fixture
def cli_runtime(tmp_path, settings, monkeypatch):
    """Runtime on a file database; each command runs in its own event loop."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    settings.local_mode = False
    runtime = build_runtime(settings, engine=engine, event_bus=EventBus(), queue=InMemoryDeliveryQueue())
    monkeypatch.setattr(server_cli, "_runtime", lambda: runtime)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(create_tables())
    return runtime


def _seed(runtime, provider="stripe", age_days=0, processed=False):
    async def seed():
        async with runtime.session_factory() as session:
            row = await WebhookRepository(session).create_pending(provider, "invoice.paid", "evt_1", {}, {})
            if processed:
                row.mark_processing()
                row.mark_processed()
            if age_days:
                row.created_at = utcnow() - timedelta(days=age_days)
            await session.commit()
        await runtime.engine.dispose()
        return row

    return asyncio.run(seed())


def _count(runtime) -> int:
    async def count():
        async with runtime.session_factory() as session:
            total = await WebhookRepository(session).count_older_than(0)
        await runtime.engine.dispose()
        return total

    return asyncio.run(count())


def _answer(monkeypatch, reply):
    monkeypatch.setattr("builtins.input", lambda prompt="": reply)


def test_prune_dry_run_prints_summary(cli_runtime, capsys):
    _seed(cli_runtime, provider="stripe", age_days=40)
    _seed(cli_runtime, provider="github", age_days=40, processed=True)

    assert server_cli.main(["prune", "--dry-run"]) == 0

    out = capsys.readouterr().out
    assert "Found 2 webhooks older than 30 days." in out
    assert "Dry run - no records will be deleted." in out
    assert "| github   | processed | 1     |" in out
    assert _count(cli_runtime) == 2


def test_prune_asks_for_confirmation(cli_runtime, capsys, monkeypatch):
    _seed(cli_runtime, age_days=40)
    _answer(monkeypatch, "no")

    assert server_cli.main(["prune"]) == 0
    assert "Aborted." in capsys.readouterr().out
    assert _count(cli_runtime) == 1

    _answer(monkeypatch, "yes")
    assert server_cli.main(["prune"]) == 0
    assert "Deleted 1 webhook records." in capsys.readouterr().out
    assert _count(cli_runtime) == 0


def test_prune_with_filters_and_yes(cli_runtime, capsys):
    _seed(cli_runtime, provider="stripe", age_days=10)
    _seed(cli_runtime, provider="github", age_days=10)

    assert server_cli.main(["prune", "--days", "7", "--provider", "github", "--yes"]) == 0
    assert "Deleted 1 webhook records." in capsys.readouterr().out
    assert _count(cli_runtime) == 1


def test_prune_nothing_to_do(cli_runtime, capsys):
    _seed(cli_runtime)
    assert server_cli.main(["prune"]) == 0
    assert "No webhooks to prune." in capsys.readouterr().out


def test_prune_forever_retention(cli_runtime, capsys):
    cli_runtime.settings.retention_days = None
    assert server_cli.main(["prune"]) == 0
    assert "Retention is set to forever. Nothing to prune." in capsys.readouterr().out


def test_prune_rejects_unknown_status(cli_runtime):
    with pytest.raises(SystemExit):
        server_cli.main(["prune", "--status", "archived"])


def test_replay_unknown_webhook(cli_runtime, capsys):
    assert server_cli.main(["replay", "missing"]) == 1
    assert "Webhook [missing] not found." in capsys.readouterr().err


def test_replay_queues_by_default(cli_runtime, capsys):
    row = _seed(cli_runtime)

    assert server_cli.main(["replay", row.uuid]) == 0

    out = capsys.readouterr().out
    assert "Webhook queued for processing." in out
    assert row.uuid in out
    assert [job.webhook_id for job in cli_runtime.queue.jobs()] == [row.id]


def test_replay_processed_declined(cli_runtime, capsys, monkeypatch):
    row = _seed(cli_runtime, processed=True)
    _answer(monkeypatch, "n")

    assert server_cli.main(["replay", str(row.id)]) == 0
    assert "This webhook has already been processed." in capsys.readouterr().out
    assert cli_runtime.queue.jobs() == []


def test_replay_sync_with_force(cli_runtime, capsys):
    handled = []
    cli_runtime.event_bus.subscribe(WebhookReceived, lambda signal: handled.append(signal.webhook.uuid))
    row = _seed(cli_runtime, processed=True)

    assert server_cli.main(["replay", row.uuid, "--sync", "--force"]) == 0
    assert "Webhook processed successfully." in capsys.readouterr().out
    assert handled == [row.uuid]


def test_replay_sync_failure(cli_runtime, capsys):
    def explode(signal):
        raise RuntimeError("listener down")

    cli_runtime.event_bus.subscribe(WebhookReceived, explode)
    row = _seed(cli_runtime)

    assert server_cli.main(["replay", row.uuid, "--sync"]) == 1
    assert "Processing failed: listener down" in capsys.readouterr().err


def test_worker_refuses_local_mode(capsys, monkeypatch):
    from hookgate.config import settings

    monkeypatch.setattr(settings, "local_mode", True)
    assert server_cli.main(["worker"]) == 1
    assert "needs Redis" in capsys.readouterr().err
