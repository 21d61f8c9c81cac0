from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text

from waorders.core.database import Base

SENDER_TYPES = ("customer", "agent", "bot")
MESSAGE_TYPES = ("text", "image", "audio", "video", "document", "location")
MESSAGE_STATUSES = ("sent", "delivered", "read", "failed")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id"), nullable=False)
    tenant_id = Column(Integer, nullable=False)

    sender_id = Column(String(64), nullable=False)
    sender_type = Column(String(20), nullable=False)
    message_type = Column(String(20), nullable=False, default="text")
    content = Column(Text, nullable=False, default="")
    media_url = Column(String(512), nullable=True)
    # `metadata` is reserved by the declarative base
    message_metadata = Column("metadata", JSON, nullable=True)

    # provider id (wamid...), absent for agent messages
    external_id = Column(String(128), nullable=True, unique=True)
    status = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


Index("ix_messages_conversation_created", Message.conversation_id, Message.created_at)
Index("ix_messages_tenant_created", Message.tenant_id, Message.created_at)
