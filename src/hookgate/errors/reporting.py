"""Error reporting hook used by the ingestion boundary."""

import logging
from typing import Any, Protocol

from hookgate.errors.exceptions import SignatureError

logger = logging.getLogger(__name__)


class ErrorReporter(Protocol):
    def report(self, exc: BaseException, **context: Any) -> None: ...


class LoggingErrorReporter:
    """Report failures to the application log.

    Signature failures are expected noise from misconfigured senders and are
    logged at warning without a traceback; anything else is logged with one.
    """

    def report(self, exc: BaseException, **context: Any) -> None:
        if isinstance(exc, SignatureError):
            logger.warning("Rejected webhook: %s", exc.message, extra=context)
            return
        logger.error("Unhandled webhook error: %s", exc, exc_info=exc, extra=context)
