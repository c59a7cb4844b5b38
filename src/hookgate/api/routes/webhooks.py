"""Inbound webhook endpoint: POST /{path}/{provider}."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from hookgate.dependencies import DBSession, Ingestor, TraceId
from hookgate.drivers.base import InboundRequest
from hookgate.logging_config import bind_request_context

router = APIRouter(tags=["Webhooks"])


@router.post("/{provider}")
async def receive_webhook(
    provider: str,
    request: Request,
    db: DBSession,
    ingestor: Ingestor,
    trace_id: TraceId,
) -> JSONResponse:
    """Verify and store one provider webhook, then acknowledge it."""
    bind_request_context(trace_id, provider)
    inbound = await InboundRequest.from_starlette(request)
    result = await ingestor.handle(db, provider, inbound)
    return JSONResponse(status_code=result.status_code, content=result.body)
