from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from waorders.core.database import get_db
from waorders.schemas.inbox import (
    ChannelType,
    ConversationAssignment,
    ConversationRead,
    ConversationStatusUpdate,
    ConversationTagsUpdate,
    MessageRead,
    OutboundMessageCreate,
    OutboundMessageCreated,
)
from waorders.services import inbox

router = APIRouter(prefix="/api/inbox/{tenant_id}", tags=["inbox"])


def _ensure_conversation(db: Session, tenant_id: int, conversation_id: int):
    try:
        return inbox.get_conversation(db, conversation_id, tenant_id=tenant_id)
    except inbox.ConversationNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")


@router.get("/conversations", response_model=List[ConversationRead])
def list_conversations(
    tenant_id: int,
    channel: Optional[ChannelType] = None,
    db: Session = Depends(get_db),
):
    return inbox.list_conversations(db, tenant_id, channel=channel)


@router.get("/conversations/{conversation_id}/messages", response_model=List[MessageRead])
def list_messages(tenant_id: int, conversation_id: int, db: Session = Depends(get_db)):
    _ensure_conversation(db, tenant_id, conversation_id)
    return inbox.list_messages(db, conversation_id)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=OutboundMessageCreated,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    tenant_id: int,
    conversation_id: int,
    payload: OutboundMessageCreate,
    db: Session = Depends(get_db),
):
    _ensure_conversation(db, tenant_id, conversation_id)
    message_id = inbox.send_outbound_message(
        db,
        conversation_id=conversation_id,
        tenant_id=tenant_id,
        agent_id=payload.agent_id,
        content=payload.content,
        message_type=payload.message_type,
    )
    return {"message_id": message_id}


@router.post("/conversations/{conversation_id}/read", response_model=ConversationRead)
def mark_conversation_read(tenant_id: int, conversation_id: int, db: Session = Depends(get_db)):
    _ensure_conversation(db, tenant_id, conversation_id)
    return inbox.mark_read(db, conversation_id, tenant_id=tenant_id)


@router.patch("/conversations/{conversation_id}/status", response_model=ConversationRead)
def update_conversation_status(
    tenant_id: int,
    conversation_id: int,
    payload: ConversationStatusUpdate,
    db: Session = Depends(get_db),
):
    _ensure_conversation(db, tenant_id, conversation_id)
    try:
        return inbox.change_status(db, conversation_id, payload.status, tenant_id=tenant_id)
    except inbox.InvalidStatusTransition as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.patch("/conversations/{conversation_id}/assignment", response_model=ConversationRead)
def assign_conversation(
    tenant_id: int,
    conversation_id: int,
    payload: ConversationAssignment,
    db: Session = Depends(get_db),
):
    _ensure_conversation(db, tenant_id, conversation_id)
    return inbox.assign_conversation(db, conversation_id, payload.assigned_to, tenant_id=tenant_id)


@router.put("/conversations/{conversation_id}/tags", response_model=ConversationRead)
def update_conversation_tags(
    tenant_id: int,
    conversation_id: int,
    payload: ConversationTagsUpdate,
    db: Session = Depends(get_db),
):
    _ensure_conversation(db, tenant_id, conversation_id)
    return inbox.set_tags(db, conversation_id, payload.tags, tenant_id=tenant_id)
