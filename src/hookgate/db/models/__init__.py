"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from hookgate.db.models.inbound_webhook import InboundWebhookRow

__all__ = [
    "InboundWebhookRow",
]
