from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

ChannelType = Literal["whatsapp", "instagram", "google", "pos", "web"]
ConversationStatus = Literal["active", "resolved", "archived"]
MessageType = Literal["text", "image", "audio", "video", "document", "location"]


class ConversationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    channel_type: str
    customer_id: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int
    status: str
    assigned_to: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_or_empty(cls, value):
        return value or []


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    conversation_id: int
    tenant_id: int
    sender_id: str
    sender_type: str
    message_type: str
    content: str
    media_url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(default=None, validation_alias="message_metadata")
    external_id: Optional[str] = None
    status: str
    created_at: datetime


class OutboundMessageCreate(BaseModel):
    agent_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    message_type: MessageType = "text"


class OutboundMessageCreated(BaseModel):
    message_id: int


class ConversationStatusUpdate(BaseModel):
    status: ConversationStatus


class ConversationAssignment(BaseModel):
    assigned_to: Optional[str] = None


class ConversationTagsUpdate(BaseModel):
    tags: List[str] = Field(default_factory=list)
