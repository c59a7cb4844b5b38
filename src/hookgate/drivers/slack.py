"""Slack-style signatures: ``X-Slack-Signature: v0=<hex>`` over ``v0:{ts}:{body}``."""

import json
from typing import Any

from hookgate.drivers.base import BaseDriver, InboundRequest, as_identifier
from hookgate.errors.exceptions import SignatureError

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_PREFIX = "v0="
URL_VERIFICATION = "url_verification"


def _decode_embedded(value: Any) -> Any:
    """Interactive payloads arrive as a JSON string in the ``payload`` form field."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return None
    return value


class SlackDriver(BaseDriver):
    name = "slack"

    def validate(self, request: InboundRequest) -> None:
        signature = request.header(SIGNATURE_HEADER)
        raw_timestamp = request.header(TIMESTAMP_HEADER)
        if not signature or not raw_timestamp:
            raise SignatureError("Missing Slack signature headers")

        secret = self.config.signing_secret
        if not secret:
            raise SignatureError("Slack signing secret not configured")

        if not (raw_timestamp.isascii() and raw_timestamp.isdigit()):
            raise SignatureError("Invalid Slack request timestamp")
        timestamp = int(raw_timestamp)
        self.check_tolerance(timestamp, "Slack request timestamp is outside tolerance")

        if not signature.startswith(SIGNATURE_PREFIX):
            raise SignatureError("Invalid Slack signature format")

        base_string = f"v0:{raw_timestamp}:".encode("utf-8") + request.body
        computed = self.compute_hmac(base_string, secret)
        if not self.compare_signatures(computed, signature[len(SIGNATURE_PREFIX):]):
            raise SignatureError("Invalid Slack signature")

    def challenge_response(self, request: InboundRequest) -> dict | None:
        if request.input("type") == URL_VERIFICATION:
            return {"challenge": request.input("challenge")}
        return None

    def event_type(self, request: InboundRequest) -> str | None:
        top_level = request.input("type")
        if top_level == URL_VERIFICATION:
            return URL_VERIFICATION
        if top_level == "event_callback":
            return as_identifier(request.input("event.type"))

        embedded = request.input("payload")
        if embedded:
            decoded = _decode_embedded(embedded)
            return as_identifier(decoded.get("type")) if isinstance(decoded, dict) else None

        return as_identifier(top_level)

    def external_id(self, request: InboundRequest) -> str | None:
        event_id = request.input("event_id")
        if event_id is None:
            event_id = request.input("event.event_ts")
        return as_identifier(event_id)

    def payload(self, request: InboundRequest) -> Any:
        embedded = request.input("payload")
        if embedded and isinstance(embedded, str):
            decoded = _decode_embedded(embedded)
            if decoded is not None:
                return decoded
        return request.all()

    def relevant_headers(self) -> list[str]:
        return super().relevant_headers() + [SIGNATURE_HEADER, TIMESTAMP_HEADER]
