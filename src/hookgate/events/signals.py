"""Signals emitted while an inbound webhook is delivered."""

from dataclasses import dataclass
from typing import Any

from hookgate.db.models.inbound_webhook import InboundWebhookRow
from hookgate.services.payload import data_get


@dataclass
class WebhookSignal:
    webhook: InboundWebhookRow

    @property
    def provider(self) -> str:
        return self.webhook.provider

    @property
    def event_type(self) -> str | None:
        return self.webhook.event_type


@dataclass
class WebhookReceived(WebhookSignal):
    """Fired at the start of every delivery attempt; listeners do the business handling.

    Mapped event types (``events`` setting) subclass this to get the same
    payload helpers.
    """

    @property
    def payload(self) -> Any:
        return self.webhook.payload if self.webhook.payload is not None else {}

    def get(self, key: str, default: Any = None) -> Any:
        return data_get(self.payload, key, default)


@dataclass
class WebhookProcessed(WebhookSignal):
    pass


@dataclass
class WebhookFailed(WebhookSignal):
    exception: BaseException
