"""Twilio-style signatures: base64 HMAC-SHA1 over the URL plus sorted form fields."""

import base64
import hashlib
import hmac

from hookgate.drivers.base import BaseDriver, InboundRequest, as_identifier
from hookgate.errors.exceptions import SignatureError

SIGNATURE_HEADER = "X-Twilio-Signature"


def compute_twilio_signature(url: str, params: dict[str, str], auth_token: str) -> str:
    """Sign ``url`` followed by each ``key + value`` in key order, no separators."""
    data = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


class TwilioDriver(BaseDriver):
    name = "twilio"

    def validate(self, request: InboundRequest) -> None:
        signature = request.header(SIGNATURE_HEADER)
        if not signature:
            raise SignatureError("Missing X-Twilio-Signature header")

        auth_token = self.config.auth_token
        if not auth_token:
            raise SignatureError("Twilio auth token not configured")

        computed = compute_twilio_signature(request.url, request.form, auth_token)
        if not self.compare_signatures(computed, signature):
            raise SignatureError("Invalid Twilio signature")

    def event_type(self, request: InboundRequest) -> str | None:
        if request.has("MessageSid"):
            status = request.input("MessageStatus", request.input("SmsStatus"))
            return f"message.{status}" if status else "message.received"
        if request.has("CallSid"):
            status = request.input("CallStatus")
            return f"call.{status}" if status else "call.incoming"
        if request.has("StatusCallback"):
            return "status_callback"
        return None

    def external_id(self, request: InboundRequest) -> str | None:
        for key in ("MessageSid", "CallSid", "SmsSid"):
            value = request.input(key)
            if value is not None:
                return as_identifier(value)
        return None

    def relevant_headers(self) -> list[str]:
        return super().relevant_headers() + [SIGNATURE_HEADER]
