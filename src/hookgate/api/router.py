"""Routers: admin API at /api/v1 and the inbound webhook endpoint at /{path}."""

from fastapi import APIRouter

from hookgate.api.routes import health, inbound_webhooks, webhooks

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(inbound_webhooks.router)


def build_webhook_router(path: str) -> APIRouter:
    """Mount the webhook endpoint under the configured base path."""
    webhook_router = APIRouter(prefix=f"/{path.strip('/')}")
    webhook_router.include_router(webhooks.router)
    return webhook_router
