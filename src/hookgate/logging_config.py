"""Structured logging configuration using structlog."""

import logging
import sys

import structlog

# Event-dict keys whose values must never reach log output.
_REDACTED_KEYS = frozenset({"secret", "signing_secret", "auth_token", "signature", "admin_api_key"})


def redact_secrets(_logger, _method_name: str, event_dict: dict) -> dict:
    """Mask shared secrets and signatures passed as structured log fields."""
    for key in _REDACTED_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route stdlib logging through structlog.

    Modules keep using ``logging.getLogger(__name__)``; the formatter installed
    here renders those records with the bound trace and provider context.

    Args:
        log_level: Logging level string (debug/info/warning/error).
        json_output: If True, output JSON (production). If False, colored console (dev).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
        shared_processors.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def bind_request_context(trace_id: str, provider: str | None = None) -> None:
    """Bind the trace id (and provider, on webhook routes) to the current context."""
    ctx = {"trace_id": trace_id}
    if provider:
        ctx["provider"] = provider
    structlog.contextvars.bind_contextvars(**ctx)


def bind_delivery_context(webhook_uuid: str, provider: str, attempt: int) -> None:
    """Bind delivery job identifiers for worker log lines."""
    structlog.contextvars.bind_contextvars(webhook_uuid=webhook_uuid, provider=provider, attempt=attempt)


def clear_request_context() -> None:
    """Clear bound context variables after a request or job."""
    structlog.contextvars.clear_contextvars()
