from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from waorders.core.database import Base

CHANNEL_TYPES = ("whatsapp", "instagram", "google", "pos", "web")
CONVERSATION_STATUSES = ("active", "resolved", "archived")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        # natural key: one thread per customer, channel and store
        UniqueConstraint("tenant_id", "channel_type", "customer_id", name="uq_conversations_tenant_channel_customer"),
    )

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    channel_type = Column(String(20), nullable=False, default="whatsapp")
    customer_id = Column(String(64), nullable=False)

    customer_name = Column(String(120), nullable=True)
    customer_phone = Column(String(32), nullable=True)
    customer_email = Column(String(255), nullable=True)

    last_message = Column(Text, nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    unread_count = Column(Integer, nullable=False, default=0)

    status = Column(String(20), nullable=False, default="active")
    assigned_to = Column(String(64), nullable=True)
    tags = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


Index("ix_conversations_tenant_channel", Conversation.tenant_id, Conversation.channel_type)
Index("ix_conversations_tenant_last_message", Conversation.tenant_id, Conversation.last_message_at)
