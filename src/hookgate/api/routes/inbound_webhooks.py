"""Admin endpoints for stored webhooks: inspect, replay, prune."""

import logging

from fastapi import APIRouter, Query

from hookgate.dependencies import AppSettings, DBSession, Pipeline, Queue, RequireAdmin
from hookgate.errors.exceptions import HookgateError, NotFoundError
from hookgate.models.enums import WebhookStatus
from hookgate.models.webhook import (
    InboundWebhookModel,
    PruneRequest,
    ReplayRequest,
    ReplayResult,
)
from hookgate.repositories.webhook_repo import WebhookRepository
from hookgate.services.maintenance import prune_webhooks, replay_webhook
from hookgate.workers.delivery import describe_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inbound-webhooks", tags=["Inbound Webhooks"], dependencies=[RequireAdmin])


@router.get("")
async def list_inbound_webhooks(
    db: DBSession,
    provider: str | None = None,
    status: WebhookStatus | None = None,
    event_type: str | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> list[dict]:
    rows = await WebhookRepository(db).list_recent(
        provider=provider, status=status, event_type=event_type, limit=limit, offset=offset
    )
    return [InboundWebhookModel.model_validate(row).model_dump(mode="json") for row in rows]


@router.get("/{webhook_uuid}")
async def get_inbound_webhook(webhook_uuid: str, db: DBSession) -> dict:
    row = await WebhookRepository(db).get_by_uuid(webhook_uuid)
    if not row:
        raise NotFoundError("Webhook", webhook_uuid)
    return InboundWebhookModel.model_validate(row).model_dump(mode="json")


@router.post("/{identifier}/replay")
async def replay_inbound_webhook(
    identifier: str,
    db: DBSession,
    pipeline: Pipeline,
    queue: Queue,
    body: ReplayRequest | None = None,
) -> dict:
    """Replay by uuid or numeric id. A failing synchronous replay reports the error in the result."""
    body = body or ReplayRequest()
    repo = WebhookRepository(db)
    try:
        result = await replay_webhook(db, identifier, pipeline, queue, force=body.force, sync=body.sync)
    except HookgateError:
        raise
    except Exception as exc:
        if not body.sync:
            raise
        webhook = await repo.find(identifier)
        if webhook is None:
            raise
        logger.warning("Synchronous replay of %s failed: %s", webhook.uuid, describe_exception(exc))
        result = ReplayResult(
            uuid=webhook.uuid,
            status=webhook.status,
            attempts=webhook.attempts,
            queued=False,
            error=describe_exception(exc),
        )
    return result.model_dump(mode="json")


@router.post("/prune")
async def prune_inbound_webhooks(db: DBSession, settings: AppSettings, body: PruneRequest | None = None) -> dict:
    body = body or PruneRequest()
    days = body.days if body.days is not None else settings.retention_days
    result = await prune_webhooks(db, days, status=body.status, provider=body.provider, dry_run=body.dry_run)
    return result.model_dump(mode="json")
