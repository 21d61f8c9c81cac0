"""Conversation ingestion service.

Sole writer of ``conversations`` and ``messages``. Inbound provider messages are
deduplicated by their external id and threaded into one conversation per
(tenant, channel, customer); agent replies go through the same summary updates
without touching the unread counter.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from waorders.models.conversation import CHANNEL_TYPES, CONVERSATION_STATUSES, Conversation
from waorders.models.message import MESSAGE_STATUSES, MESSAGE_TYPES, Message

logger = logging.getLogger(__name__)

OUTCOME_CREATED = "created"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_FAILED = "failed"

_STATUS_TRANSITIONS = {
    "active": {"resolved"},
    "resolved": {"archived", "active"},
    "archived": {"active"},
}

_DELIVERY_RANK = {"sent": 0, "delivered": 1, "read": 2}


class InboxError(Exception):
    pass


class InvalidInboxValue(InboxError, ValueError):
    pass


class ConversationNotFound(InboxError):
    def __init__(self, conversation_id: int):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class InvalidStatusTransition(InboxError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move conversation from {current} to {target}")
        self.current = current
        self.target = target


@dataclass
class IngestResult:
    conversation_id: int | None
    message_id: int | None
    is_new: bool
    outcome: str
    reason: str | None = None

    @classmethod
    def failed(cls, reason: str) -> "IngestResult":
        return cls(conversation_id=None, message_id=None, is_new=False, outcome=OUTCOME_FAILED, reason=reason)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_choice(value: str | None, allowed: Iterable[str], label: str) -> str:
    normalized = (value or "").strip().lower()
    if normalized not in allowed:
        raise InvalidInboxValue(f"Unsupported {label}: {value!r}")
    return normalized


def _find_message_by_external_id(db: Session, external_id: str) -> Message | None:
    return db.query(Message).filter(Message.external_id == external_id).first()


def _find_conversation(db: Session, *, tenant_id: int, channel: str, customer_id: str) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(
            Conversation.tenant_id == tenant_id,
            Conversation.channel_type == channel,
            Conversation.customer_id == customer_id,
        )
        .first()
    )


def get_conversation(db: Session, conversation_id: int, *, tenant_id: int | None = None) -> Conversation:
    query = db.query(Conversation).filter(Conversation.id == conversation_id)
    if tenant_id is not None:
        query = query.filter(Conversation.tenant_id == tenant_id)
    conversation = query.first()
    if conversation is None:
        raise ConversationNotFound(conversation_id)
    return conversation


def _get_or_create_conversation(
    db: Session,
    *,
    tenant_id: int,
    channel: str,
    customer_id: str,
    customer_name: str | None,
) -> Conversation:
    conversation = _find_conversation(db, tenant_id=tenant_id, channel=channel, customer_id=customer_id)
    if conversation is not None:
        return conversation

    conversation = Conversation(
        tenant_id=tenant_id,
        channel_type=channel,
        customer_id=customer_id,
        customer_phone=customer_id if channel == "whatsapp" else None,
        customer_name=customer_name,
        unread_count=0,
        status="active",
    )
    db.add(conversation)
    try:
        # flushed, not committed: the row lands with the first message or not at all
        db.flush()
    except IntegrityError:
        # another request created the same thread first; nothing else is pending yet
        db.rollback()
        conversation = _find_conversation(db, tenant_id=tenant_id, channel=channel, customer_id=customer_id)
        if conversation is None:
            raise
        logger.info(
            "conversation created concurrently, reusing existing row",
            extra={"tenant_id": tenant_id, "channel": channel, "conversation_id": conversation.id},
        )
        return conversation

    logger.info(
        "conversation created",
        extra={"tenant_id": tenant_id, "channel": channel, "conversation_id": conversation.id},
    )
    return conversation


def ingest_inbound_message(
    db: Session,
    *,
    tenant_id: int,
    channel: str,
    customer_id: str,
    external_message_id: str,
    message_type: str,
    content: str,
    media_url: str | None = None,
    metadata: dict[str, Any] | None = None,
    customer_name: str | None = None,
) -> IngestResult:
    channel = _require_choice(channel, CHANNEL_TYPES, "channel")
    message_type = _require_choice(message_type, MESSAGE_TYPES, "message type")
    if not customer_id:
        raise InvalidInboxValue("customer id is required")
    if not external_message_id:
        raise InvalidInboxValue("external message id is required")

    existing = _find_message_by_external_id(db, external_message_id)
    if existing is not None:
        return IngestResult(
            conversation_id=existing.conversation_id,
            message_id=existing.id,
            is_new=False,
            outcome=OUTCOME_DUPLICATE,
        )

    conversation = _get_or_create_conversation(
        db,
        tenant_id=tenant_id,
        channel=channel,
        customer_id=customer_id,
        customer_name=customer_name,
    )
    conversation_id = conversation.id
    now = _utcnow()

    summary: dict[str, Any] = {
        "last_message": content,
        "last_message_at": now,
        "unread_count": Conversation.unread_count + 1,
        "updated_at": now,
    }
    if customer_name and not conversation.customer_name:
        summary["customer_name"] = customer_name
    db.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(**summary)
        .execution_options(synchronize_session=False)
    )

    message = Message(
        conversation_id=conversation_id,
        tenant_id=tenant_id,
        sender_id=customer_id,
        sender_type="customer",
        message_type=message_type,
        content=content,
        media_url=media_url,
        message_metadata=metadata or None,
        external_id=external_message_id,
        status="delivered",
        created_at=now,
    )
    db.add(message)
    try:
        db.commit()
    except IntegrityError:
        # same external id committed by a concurrent delivery; the summary patch and any new conversation roll back too
        db.rollback()
        existing = _find_message_by_external_id(db, external_message_id)
        if existing is None:
            raise
        return IngestResult(
            conversation_id=existing.conversation_id,
            message_id=existing.id,
            is_new=False,
            outcome=OUTCOME_DUPLICATE,
        )

    return IngestResult(
        conversation_id=conversation_id,
        message_id=message.id,
        is_new=True,
        outcome=OUTCOME_CREATED,
    )


def send_outbound_message(
    db: Session,
    *,
    conversation_id: int,
    tenant_id: int,
    agent_id: str,
    content: str,
    message_type: str | None = None,
) -> int:
    message_type = _require_choice(message_type or "text", MESSAGE_TYPES, "message type")
    conversation = get_conversation(db, conversation_id, tenant_id=tenant_id)
    now = _utcnow()

    message = Message(
        conversation_id=conversation.id,
        tenant_id=tenant_id,
        sender_id=agent_id,
        sender_type="agent",
        message_type=message_type,
        content=content,
        status="sent",
        created_at=now,
    )
    db.add(message)
    conversation.last_message = content
    conversation.last_message_at = now
    conversation.updated_at = now
    db.commit()
    return message.id


def mark_read(db: Session, conversation_id: int, *, tenant_id: int | None = None) -> Conversation:
    conversation = get_conversation(db, conversation_id, tenant_id=tenant_id)
    conversation.unread_count = 0
    conversation.updated_at = _utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def change_status(
    db: Session,
    conversation_id: int,
    status: str,
    *,
    tenant_id: int | None = None,
) -> Conversation:
    target = _require_choice(status, CONVERSATION_STATUSES, "conversation status")
    conversation = get_conversation(db, conversation_id, tenant_id=tenant_id)
    current = conversation.status or "active"
    if target not in _STATUS_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransition(current, target)

    conversation.status = target
    conversation.updated_at = _utcnow()
    db.commit()
    db.refresh(conversation)
    logger.info(
        "conversation status changed",
        extra={"tenant_id": conversation.tenant_id, "conversation_id": conversation.id, "outcome": f"{current}->{target}"},
    )
    return conversation


def assign_conversation(
    db: Session,
    conversation_id: int,
    assigned_to: str | None,
    *,
    tenant_id: int | None = None,
) -> Conversation:
    conversation = get_conversation(db, conversation_id, tenant_id=tenant_id)
    conversation.assigned_to = (assigned_to or "").strip() or None
    conversation.updated_at = _utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def set_tags(
    db: Session,
    conversation_id: int,
    tags: Iterable[str],
    *,
    tenant_id: int | None = None,
) -> Conversation:
    cleaned: list[str] = []
    for tag in tags:
        value = (tag or "").strip()
        if value and value not in cleaned:
            cleaned.append(value)

    conversation = get_conversation(db, conversation_id, tenant_id=tenant_id)
    conversation.tags = cleaned
    conversation.updated_at = _utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def apply_status_update(db: Session, *, external_message_id: str, status: str) -> bool:
    """Advance a message's delivery status from a provider receipt.

    Receipts may arrive out of order, so a status never moves backwards and
    ``failed`` does not override ``read``. Returns True when the row changed.
    """
    target = _require_choice(status, MESSAGE_STATUSES, "message status")
    message = _find_message_by_external_id(db, external_message_id)
    if message is None:
        return False

    current = message.status
    if current == target or current == "failed":
        return False
    if target == "failed":
        if current == "read":
            return False
    elif _DELIVERY_RANK[target] <= _DELIVERY_RANK.get(current, -1):
        return False

    message.status = target
    db.commit()
    return True


def list_conversations(db: Session, tenant_id: int, channel: str | None = None) -> list[Conversation]:
    query = db.query(Conversation).filter(Conversation.tenant_id == tenant_id)
    if channel:
        query = query.filter(Conversation.channel_type == _require_choice(channel, CHANNEL_TYPES, "channel"))
    return query.order_by(Conversation.last_message_at.desc().nulls_last(), Conversation.id.desc()).all()


def list_messages(db: Session, conversation_id: int) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )
