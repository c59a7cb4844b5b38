"""Custom exception classes for Hookgate."""


class HookgateError(Exception):
    """Base exception for Hookgate."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class SignatureError(HookgateError):
    """Inbound request failed provider signature verification.

    Covers missing headers, missing secrets, malformed signatures, stale
    timestamps and mismatches. Never retried; no record is stored.
    """

    def __init__(self, reason: str):
        super().__init__("INVALID_SIGNATURE", reason, status_code=401)


class UnknownProviderError(HookgateError):
    """Provider is not configured or its driver cannot be resolved."""

    def __init__(self, message: str):
        super().__init__("UNKNOWN_PROVIDER", message, status_code=404)


class ValidationError(HookgateError):
    """Request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(HookgateError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} [{resource_id}] not found.",
            status_code=404,
        )


class AuthenticationError(HookgateError):
    """Admin credentials missing or invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class ConflictError(HookgateError):
    """Resource state conflict."""

    def __init__(self, message: str):
        super().__init__("CONFLICT", message, status_code=409)


class AlreadyProcessedError(ConflictError):
    """Replay refused because the webhook was already processed."""

    def __init__(self, webhook_uuid: str):
        self.webhook_uuid = webhook_uuid
        super().__init__("This webhook has already been processed.")
