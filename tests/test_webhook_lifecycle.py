"""Ingestion record state machine and repository queries."""

from datetime import timedelta

import pytest

from hookgate.db.base import utcnow
from hookgate.models.enums import WebhookStatus
from hookgate.repositories.webhook_repo import WebhookRepository


async def _create(db_session, provider="stripe", event_type="invoice.paid", external_id="evt_1"):
    repo = WebhookRepository(db_session)
    row = await repo.create_pending(provider, event_type, external_id, {"Content-Type": "application/json"}, {"id": external_id})
    await db_session.commit()
    return row


@pytest.mark.asyncio
async def test_new_record_is_pending_with_uuid(db_session):
    row = await _create(db_session)
    assert row.is_pending()
    assert row.attempts == 0
    assert row.processed_at is None
    assert len(row.uuid) == 36
    assert row.event_identifier == "stripe.invoice.paid"


@pytest.mark.asyncio
async def test_uuids_are_unique(db_session):
    first = await _create(db_session, external_id="a")
    second = await _create(db_session, external_id="a")
    assert first.uuid != second.uuid


@pytest.mark.asyncio
async def test_full_success_cycle(db_session):
    repo = WebhookRepository(db_session)
    row = await _create(db_session)

    await repo.begin_processing(row)
    assert row.is_processing()
    assert row.attempts == 1

    await repo.complete_processing(row)
    assert row.is_processed()
    assert row.processed_at is not None
    assert row.error_message is None


@pytest.mark.asyncio
async def test_failure_records_message_and_keeps_attempts(db_session):
    repo = WebhookRepository(db_session)
    row = await _create(db_session)
    await repo.begin_processing(row)
    await repo.fail_processing(row, "boom")

    assert row.is_failed()
    assert row.error_message == "boom"
    assert row.attempts == 1
    assert row.processed_at is None


@pytest.mark.asyncio
async def test_reset_then_begin_increments_attempts_by_one(db_session):
    repo = WebhookRepository(db_session)
    row = await _create(db_session)
    await repo.begin_processing(row)
    await repo.fail_processing(row, "boom")

    await repo.reset_for_retry(row)
    assert row.is_pending()
    assert row.error_message is None
    assert row.attempts == 1

    await repo.begin_processing(row)
    assert row.attempts == 2


@pytest.mark.asyncio
async def test_reset_keeps_processed_at(db_session):
    repo = WebhookRepository(db_session)
    row = await _create(db_session)
    await repo.begin_processing(row)
    await repo.complete_processing(row)
    processed_at = row.processed_at

    await repo.reset_for_retry(row)
    assert row.processed_at == processed_at


@pytest.mark.asyncio
async def test_find_by_uuid_or_numeric_id(db_session):
    repo = WebhookRepository(db_session)
    row = await _create(db_session)
    assert (await repo.find(row.uuid)).id == row.id
    assert (await repo.find(str(row.id))).uuid == row.uuid
    assert await repo.find("missing") is None


@pytest.mark.asyncio
async def test_list_recent_filters(db_session):
    await _create(db_session, provider="stripe")
    await _create(db_session, provider="github", event_type="push")
    repo = WebhookRepository(db_session)

    assert [r.provider for r in await repo.list_recent(provider="github")] == ["github"]
    assert len(await repo.list_recent(status=WebhookStatus.PENDING)) == 2
    assert len(await repo.list_recent(event_type="push")) == 1


@pytest.mark.asyncio
async def test_retention_queries(db_session):
    repo = WebhookRepository(db_session)
    old = await _create(db_session, provider="stripe")
    old_failed = await _create(db_session, provider="github")
    await _create(db_session, provider="stripe")
    old.created_at = utcnow() - timedelta(days=40)
    old_failed.created_at = utcnow() - timedelta(days=40)
    old_failed.mark_failed("x")
    await db_session.commit()

    assert await repo.count_older_than(30) == 2
    assert await repo.count_older_than(30, status=WebhookStatus.FAILED) == 1
    assert await repo.count_older_than(30, provider="stripe") == 1
    assert await repo.summarize_older_than(30) == [("github", "failed", 1), ("stripe", "pending", 1)]

    assert await repo.delete_older_than(30, provider="github") == 1
    await db_session.commit()
    assert await repo.count_older_than(30) == 1
