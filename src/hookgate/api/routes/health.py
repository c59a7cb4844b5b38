"""Health check endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

router = APIRouter()


async def _check_database(state) -> str:
    async with state.db_session_factory() as session:
        await session.execute(text("SELECT 1"))
    return "ok"


async def _check_redis(state) -> str:
    redis = getattr(state, "redis", None)
    if redis is None:
        return "disabled"
    await redis.ping()
    return "ok"


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "hookgate", "version": "0.1.0"}


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 whenever the process is serving requests."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe: database, Redis (outside local mode) and queue depth."""
    state = request.app.state
    checks: dict[str, str] = {}
    for name, check in (("database", _check_database), ("redis", _check_redis)):
        try:
            checks[name] = await check(state)
        except Exception as exc:
            checks[name] = f"error: {exc}"

    ready = all(not value.startswith("error") for value in checks.values())
    content: dict = {"status": "ready" if ready else "not_ready", "checks": checks}
    if ready:
        content["queued_deliveries"] = await state.delivery_queue.size()
    return JSONResponse(status_code=200 if ready else 503, content=content)
