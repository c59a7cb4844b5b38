"""Driver contract shared by every provider: signature check plus event extraction."""

from __future__ import annotations

import hmac
import json
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from starlette.datastructures import Headers

from hookgate.config import ProviderConfig
from hookgate.errors.exceptions import SignatureError
from hookgate.services.payload import data_get

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_MISSING = object()


@dataclass
class InboundRequest:
    """Raw inbound webhook request, decoupled from the web framework.

    Signature checks always run against ``body`` exactly as received; the
    parsed views below are only used for event extraction.
    """

    body: bytes
    headers: Headers
    url: str = ""

    @classmethod
    def build(
        cls,
        body: bytes | str = b"",
        headers: Mapping[str, str] | None = None,
        url: str = "",
    ) -> InboundRequest:
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(body=body, headers=Headers(headers=dict(headers or {})), url=url)

    @classmethod
    async def from_starlette(cls, request) -> InboundRequest:
        body = await request.body()
        return cls(body=body, headers=request.headers, url=str(request.url))

    def header(self, name: str) -> str | None:
        return self.headers.get(name)

    @property
    def is_form(self) -> bool:
        return (self.headers.get("content-type") or "").lower().startswith(_FORM_CONTENT_TYPE)

    @cached_property
    def form(self) -> dict[str, str]:
        """URL-encoded body fields (empty for non-form requests)."""
        if not self.is_form:
            return {}
        return dict(parse_qsl(self.body.decode("utf-8", errors="replace"), keep_blank_values=True))

    @cached_property
    def json_body(self) -> Any:
        """Decoded JSON body, or None when the body is not JSON."""
        if self.is_form or not self.body.strip():
            return None
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            return None

    @cached_property
    def query(self) -> dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))

    def all(self) -> dict[str, Any] | list[Any]:
        """Query parameters merged with body input; body values win."""
        if self.is_form:
            return {**self.query, **self.form}
        decoded = self.json_body
        if isinstance(decoded, list):
            return decoded
        if isinstance(decoded, dict):
            return {**self.query, **decoded}
        return dict(self.query)

    def input(self, key: str, default: Any = None) -> Any:
        data = self.all()
        if not isinstance(data, dict):
            return default
        return data_get(data, key, default)

    def has(self, key: str) -> bool:
        return self.input(key, _MISSING) is not _MISSING


@dataclass
class ExtractedEvent:
    event_type: str | None
    external_id: str | None
    payload: Any
    headers: dict[str, str] = field(default_factory=dict)


def as_identifier(value: Any) -> str | None:
    """Coerce a scalar event type / id to str; anything else becomes None."""
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class BaseDriver(ABC):
    """A provider's verifier and extractor.

    Instances are bound to one provider's configuration at construction and
    hold no per-request state, so a single instance serves concurrent requests.
    """

    name: str = "base"
    base_headers: tuple[str, ...] = ("Content-Type", "User-Agent")

    # Seconds since the epoch; replaced in tests to pin the replay window.
    clock = staticmethod(time.time)

    def __init__(self, config: ProviderConfig):
        self.config = config

    @abstractmethod
    def validate(self, request: InboundRequest) -> None:
        """Raise SignatureError unless the request carries a valid signature."""
        ...

    @abstractmethod
    def event_type(self, request: InboundRequest) -> str | None:
        ...

    @abstractmethod
    def external_id(self, request: InboundRequest) -> str | None:
        ...

    def payload(self, request: InboundRequest) -> Any:
        return request.all()

    def relevant_headers(self) -> list[str]:
        """Header allow-list for storage."""
        return list(self.base_headers)

    def storable_headers(self, request: InboundRequest) -> dict[str, str]:
        stored: dict[str, str] = {}
        for name in self.relevant_headers():
            value = request.header(name)
            if value:
                stored[name] = value
        return stored

    def challenge_response(self, request: InboundRequest) -> dict | None:
        """Body to echo instead of storing the request (handshake requests)."""
        return None

    def extract(self, request: InboundRequest) -> ExtractedEvent:
        return ExtractedEvent(
            event_type=self.event_type(request),
            external_id=self.external_id(request),
            payload=self.payload(request),
            headers=self.storable_headers(request),
        )

    # Helpers for subclasses

    def now(self) -> int:
        return int(self.clock())

    def check_tolerance(self, timestamp: int, message: str) -> None:
        """Reject timestamps more than ``tolerance`` seconds away from now (boundary accepted)."""
        if abs(self.now() - timestamp) > self.config.tolerance:
            raise SignatureError(message)

    @staticmethod
    def compute_hmac(payload: bytes | str, secret: str, algorithm: str = "sha256") -> str:
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        return hmac.new(secret.encode("utf-8"), payload, algorithm).hexdigest()

    @staticmethod
    def compare_signatures(expected: str, actual: str) -> bool:
        """Constant-time comparison."""
        return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))
