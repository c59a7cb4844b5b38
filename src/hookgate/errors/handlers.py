"""Exception handlers rendering the admin API error envelope."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hookgate.errors.exceptions import AuthenticationError, HookgateError
from hookgate.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=getattr(request.state, "trace_id", "unknown"),
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    """Register the Hookgate and request-validation handlers on the app.

    The inbound webhook route never raises into these; it answers with its
    own fixed bodies.
    """

    @app.exception_handler(HookgateError)
    async def hookgate_error_handler(request: Request, exc: HookgateError):
        if isinstance(exc, AuthenticationError):
            logger.warning(
                "admin_access_denied",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "reason": exc.message,
                    "key_present": "x-admin-key" in request.headers,
                },
            )
        return error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return error_response(request, 422, "VALIDATION_ERROR", "Request validation failed", details)
