"""FastAPI dependency injection providers."""

import hmac
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header, Request

from hookgate.config import Settings
from hookgate.errors.exceptions import AuthenticationError


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "unknown")


def get_ingestor(request: Request):
    return request.app.state.ingestor


def get_pipeline(request: Request):
    return request.app.state.pipeline


def get_delivery_queue(request: Request):
    return request.app.state.delivery_queue


async def require_admin_key(
    request: Request,
    x_admin_key: Annotated[str | None, Header()] = None,
) -> None:
    """Guard admin routes when ``admin_api_key`` is configured."""
    expected = request.app.state.settings.admin_api_key
    if not expected:
        return
    if not x_admin_key:
        raise AuthenticationError("Missing X-Admin-Key header")
    if not hmac.compare_digest(expected.encode("utf-8"), x_admin_key.encode("utf-8")):
        raise AuthenticationError("Invalid admin key")


# Type aliases for dependency injection
DBSession = Annotated[object, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
TraceId = Annotated[str, Depends(get_trace_id)]
Ingestor = Annotated[object, Depends(get_ingestor)]
Pipeline = Annotated[object, Depends(get_pipeline)]
Queue = Annotated[object, Depends(get_delivery_queue)]
RequireAdmin = Depends(require_admin_key)
