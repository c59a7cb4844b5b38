"""GitHub-style signatures: ``X-Hub-Signature-256: sha256=<hex>``."""

from hookgate.drivers.base import BaseDriver, InboundRequest, as_identifier
from hookgate.errors.exceptions import SignatureError

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"
SIGNATURE_PREFIX = "sha256="


class GitHubDriver(BaseDriver):
    name = "github"

    def validate(self, request: InboundRequest) -> None:
        signature = request.header(SIGNATURE_HEADER)
        if not signature:
            raise SignatureError("Missing X-Hub-Signature-256 header")

        secret = self.config.secret
        if not secret:
            raise SignatureError("GitHub webhook secret not configured")

        if not signature.startswith(SIGNATURE_PREFIX):
            raise SignatureError("Invalid GitHub signature format")

        computed = self.compute_hmac(request.body, secret)
        if not self.compare_signatures(computed, signature[len(SIGNATURE_PREFIX):]):
            raise SignatureError("Invalid GitHub signature")

    def event_type(self, request: InboundRequest) -> str | None:
        """Event header, suffixed with the payload ``action`` when there is one."""
        event = request.header(EVENT_HEADER)
        if not event:
            return None
        action = as_identifier(request.input("action"))
        return f"{event}.{action}" if action else event

    def external_id(self, request: InboundRequest) -> str | None:
        return request.header(DELIVERY_HEADER) or None

    def relevant_headers(self) -> list[str]:
        return super().relevant_headers() + [
            SIGNATURE_HEADER,
            EVENT_HEADER,
            DELIVERY_HEADER,
            "X-GitHub-Hook-ID",
            "X-GitHub-Hook-Installation-Target-Type",
        ]
