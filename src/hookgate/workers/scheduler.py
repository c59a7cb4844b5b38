"""Background retention pruning."""

import asyncio
import logging

logger = logging.getLogger(__name__)


async def prune_expired(session_factory, retention_days: int | None) -> int:
    """Delete records past the retention window. Returns the number deleted."""
    from hookgate.services.maintenance import prune_webhooks

    async with session_factory() as session:
        result = await prune_webhooks(session, retention_days)
    return result.deleted


async def run_retention_pruner(session_factory, retention_days: int | None, interval: float = 3600) -> None:
    """Background task that periodically prunes webhooks older than ``retention_days``."""
    if retention_days is None:
        logger.info("Retention pruner disabled (records kept forever)")
        return

    logger.info("Retention pruner started (retention=%dd, interval=%ds)", retention_days, interval)

    while True:
        try:
            await asyncio.sleep(interval)

            deleted = await prune_expired(session_factory, retention_days)
            if deleted:
                logger.info("Retention pruner deleted %d webhooks", deleted)

        except asyncio.CancelledError:
            logger.info("Retention pruner stopped")
            break
        except Exception as exc:
            logger.exception("Retention pruner error: %s", exc)
