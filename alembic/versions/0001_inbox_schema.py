from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0001_inbox_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)
    tables = set(inspector.get_table_names())

    if "conversations" not in tables:
        op.create_table(
            "conversations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("channel_type", sa.String(length=20), nullable=False),
            sa.Column("customer_id", sa.String(length=64), nullable=False),
            sa.Column("customer_name", sa.String(length=120), nullable=True),
            sa.Column("customer_phone", sa.String(length=32), nullable=True),
            sa.Column("customer_email", sa.String(length=255), nullable=True),
            sa.Column("last_message", sa.Text(), nullable=True),
            sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("unread_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
            sa.Column("assigned_to", sa.String(length=64), nullable=True),
            sa.Column("tags", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint(
                "tenant_id",
                "channel_type",
                "customer_id",
                name="uq_conversations_tenant_channel_customer",
            ),
        )
        op.create_index("ix_conversations_tenant_id", "conversations", ["tenant_id"], unique=False)
        op.create_index("ix_conversations_tenant_channel", "conversations", ["tenant_id", "channel_type"], unique=False)
        op.create_index(
            "ix_conversations_tenant_last_message",
            "conversations",
            ["tenant_id", "last_message_at"],
            unique=False,
        )

    if "messages" not in tables:
        op.create_table(
            "messages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("conversation_id", sa.Integer(), sa.ForeignKey("conversations.id"), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("sender_id", sa.String(length=64), nullable=False),
            sa.Column("sender_type", sa.String(length=20), nullable=False),
            sa.Column("message_type", sa.String(length=20), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("media_url", sa.String(length=512), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("external_id", sa.String(length=128), nullable=True, unique=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_messages_conversation_created", "messages", ["conversation_id", "created_at"], unique=False)
        op.create_index("ix_messages_tenant_created", "messages", ["tenant_id", "created_at"], unique=False)

    if "whatsapp_config" not in tables:
        op.create_table(
            "whatsapp_config",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("tenant_id", sa.Integer(), nullable=False, unique=True),
            sa.Column("phone_number_id", sa.String(), nullable=True),
            sa.Column("business_account_id", sa.String(), nullable=True),
            sa.Column("access_token", sa.String(), nullable=True),
            sa.Column("verify_token", sa.String(), nullable=True),
            sa.Column("webhook_url", sa.String(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_whatsapp_config_phone_number_id", "whatsapp_config", ["phone_number_id"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_whatsapp_config_phone_number_id", table_name="whatsapp_config")
    op.drop_table("whatsapp_config")
    op.drop_index("ix_messages_tenant_created", table_name="messages")
    op.drop_index("ix_messages_conversation_created", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_conversations_tenant_last_message", table_name="conversations")
    op.drop_index("ix_conversations_tenant_channel", table_name="conversations")
    op.drop_index("ix_conversations_tenant_id", table_name="conversations")
    op.drop_table("conversations")
