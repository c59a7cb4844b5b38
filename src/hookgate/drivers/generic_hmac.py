"""Configurable HMAC driver for providers without a dedicated scheme."""

from hookgate.drivers.base import BaseDriver, InboundRequest, as_identifier
from hookgate.errors.exceptions import SignatureError


class HmacDriver(BaseDriver):
    """Hex HMAC of the raw body in a configurable header.

    Config keys: ``secret``, ``header`` (default ``X-Signature``), ``prefix``
    (stripped when present), ``algorithm`` (default ``sha256``), ``event_key`` /
    ``id_key`` payload fields and optional ``event_header`` / ``id_header``.
    """

    name = "hmac"

    def validate(self, request: InboundRequest) -> None:
        header_name = self.config.header
        signature = request.header(header_name)
        if not signature:
            raise SignatureError(f"Missing {header_name} header")

        secret = self.config.secret
        if not secret:
            raise SignatureError("Webhook secret not configured")

        prefix = self.config.prefix
        if prefix and signature.startswith(prefix):
            signature = signature[len(prefix):]

        algorithm = self.config.algorithm
        try:
            computed = self.compute_hmac(request.body, secret, algorithm)
        except (ValueError, TypeError):
            raise SignatureError(f"Unsupported HMAC algorithm '{algorithm}'")

        if not self.compare_signatures(computed, signature):
            raise SignatureError("Invalid webhook signature")

    def event_type(self, request: InboundRequest) -> str | None:
        event_header = self.config.event_header
        if event_header and request.header(event_header) is not None:
            return request.header(event_header)
        return as_identifier(request.input(self.config.event_key))

    def external_id(self, request: InboundRequest) -> str | None:
        id_header = self.config.id_header
        if id_header and request.header(id_header) is not None:
            return request.header(id_header)
        return as_identifier(request.input(self.config.id_key))

    def relevant_headers(self) -> list[str]:
        headers = super().relevant_headers() + [self.config.header]
        if self.config.event_header:
            headers.append(self.config.event_header)
        if self.config.id_header:
            headers.append(self.config.id_header)
        return headers
