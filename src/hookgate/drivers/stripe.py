"""Stripe-style signatures: ``Stripe-Signature: t=<ts>,v1=<hex>``."""

from hookgate.drivers.base import BaseDriver, InboundRequest, as_identifier
from hookgate.errors.exceptions import SignatureError

SIGNATURE_HEADER = "Stripe-Signature"


def parse_signature_header(header: str) -> tuple[str | None, list[str]]:
    """Split a Stripe signature header into its timestamp and v1 signatures."""
    timestamp: str | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    return timestamp, signatures


class StripeDriver(BaseDriver):
    """HMAC-SHA256 over ``"{t}.{body}"`` with a replay window.

    Several ``v1`` entries may be present while a secret is being rolled;
    any one of them matching is enough.
    """

    name = "stripe"

    def validate(self, request: InboundRequest) -> None:
        header = request.header(SIGNATURE_HEADER)
        if not header:
            raise SignatureError("Missing Stripe-Signature header")

        secret = self.config.secret
        if not secret:
            raise SignatureError("Stripe webhook secret not configured")

        raw_timestamp, signatures = parse_signature_header(header)
        if raw_timestamp is None or not signatures:
            raise SignatureError("Invalid Stripe signature format")
        if not (raw_timestamp.isascii() and raw_timestamp.isdigit()):
            raise SignatureError("Invalid Stripe signature format")
        timestamp = int(raw_timestamp)

        self.check_tolerance(timestamp, "Stripe webhook timestamp is outside tolerance")

        signed_payload = f"{raw_timestamp}.".encode("utf-8") + request.body
        computed = self.compute_hmac(signed_payload, secret)

        matched = False
        for candidate in signatures:
            # No early exit: every candidate is compared.
            matched |= self.compare_signatures(computed, candidate)
        if not matched:
            raise SignatureError("Invalid Stripe signature")

    def event_type(self, request: InboundRequest) -> str | None:
        return as_identifier(request.input("type"))

    def external_id(self, request: InboundRequest) -> str | None:
        return as_identifier(request.input("id"))

    def relevant_headers(self) -> list[str]:
        return super().relevant_headers() + [SIGNATURE_HEADER]
