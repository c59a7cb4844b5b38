"""Create inbound_webhooks table.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "inbound_webhooks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uuid", sa.String(36), nullable=False, unique=True),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=True),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("headers", sa.JSON(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_inbound_webhooks_provider", "inbound_webhooks", ["provider"])
    op.create_index("ix_inbound_webhooks_event_type", "inbound_webhooks", ["event_type"])
    op.create_index("ix_inbound_webhooks_external_id", "inbound_webhooks", ["external_id"])
    op.create_index("ix_inbound_webhooks_status", "inbound_webhooks", ["status"])
    op.create_index("ix_inbound_webhooks_created_at", "inbound_webhooks", ["created_at"])
    op.create_index(
        "ix_inbound_webhooks_provider_status_created",
        "inbound_webhooks",
        ["provider", "status", "created_at"],
    )
    op.create_index(
        "ix_inbound_webhooks_provider_event_created",
        "inbound_webhooks",
        ["provider", "event_type", "created_at"],
    )


def downgrade() -> None:
    op.drop_table("inbound_webhooks")
