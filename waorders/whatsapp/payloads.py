"""Typed views of the WhatsApp Cloud API webhook payload.

Inbound messages form a tagged union keyed by ``type``; kinds we do not model
fall through to :class:`UnsupportedMessage`. Every model maps itself onto the
canonical (content, media reference, metadata) triple stored by the inbox.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter

WHATSAPP_OBJECT = "whatsapp_business_account"


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TextBody(_Payload):
    body: Optional[str] = None


class MediaBody(_Payload):
    id: Optional[str] = None
    mime_type: Optional[str] = None
    caption: Optional[str] = None


class DocumentBody(MediaBody):
    filename: Optional[str] = None


class LocationBody(_Payload):
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    name: Optional[str] = None
    address: Optional[str] = None


class _InboundMessage(_Payload):
    id: str = Field(min_length=1)
    from_: str = Field(alias="from", min_length=1)
    timestamp: Optional[str] = None

    @property
    def message_type(self) -> str:
        return getattr(self, "type", None) or "unknown"


class TextMessage(_InboundMessage):
    type: Literal["text"]
    text: Optional[TextBody] = None

    def normalized(self):
        return (self.text.body if self.text and self.text.body else ""), None, {}


class ImageMessage(_InboundMessage):
    type: Literal["image"]
    image: Optional[MediaBody] = None

    def normalized(self):
        image = self.image or MediaBody()
        return image.caption or "[Image]", image.id, _compact({"mimeType": image.mime_type})


class AudioMessage(_InboundMessage):
    type: Literal["audio"]
    audio: Optional[MediaBody] = None

    def normalized(self):
        audio = self.audio or MediaBody()
        return "[Audio]", audio.id, _compact({"mimeType": audio.mime_type})


class VideoMessage(_InboundMessage):
    type: Literal["video"]
    video: Optional[MediaBody] = None

    def normalized(self):
        video = self.video or MediaBody()
        return video.caption or "[Video]", video.id, _compact({"mimeType": video.mime_type})


class DocumentMessage(_InboundMessage):
    type: Literal["document"]
    document: Optional[DocumentBody] = None

    def normalized(self):
        document = self.document or DocumentBody()
        metadata = _compact({"mimeType": document.mime_type, "fileName": document.filename})
        return document.filename or "[Document]", document.id, metadata


class LocationMessage(_InboundMessage):
    type: Literal["location"]
    location: Optional[LocationBody] = None

    def normalized(self):
        location = self.location or LocationBody()
        return "[Location]", None, _compact({"latitude": location.latitude, "longitude": location.longitude})


class UnsupportedMessage(_InboundMessage):
    type: Optional[str] = None

    def normalized(self):
        return f"[Unsupported message type: {self.message_type}]", None, {}


_KNOWN_KINDS = {"text", "image", "audio", "video", "document", "location"}


def _message_tag(value: Any) -> str:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return kind if isinstance(kind, str) and kind in _KNOWN_KINDS else "unsupported"


InboundMessage = Annotated[
    Union[
        Annotated[TextMessage, Tag("text")],
        Annotated[ImageMessage, Tag("image")],
        Annotated[AudioMessage, Tag("audio")],
        Annotated[VideoMessage, Tag("video")],
        Annotated[DocumentMessage, Tag("document")],
        Annotated[LocationMessage, Tag("location")],
        Annotated[UnsupportedMessage, Tag("unsupported")],
    ],
    Discriminator(_message_tag),
]

inbound_message_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


class StatusUpdate(_Payload):
    id: str = Field(min_length=1)
    status: str = Field(min_length=1)
    timestamp: Optional[str] = None
    recipient_id: Optional[str] = None


@dataclass
class NormalizedMessage:
    """Canonical inbound event handed to the inbox service."""

    external_id: str
    customer_id: str
    message_type: str
    content: str
    media_url: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    customer_name: Optional[str] = None


@dataclass
class RejectedMessage:
    """A batch entry that could not be normalized."""

    position: int
    reason: str
    external_id: Optional[str] = None


def normalize_message(message: InboundMessage, *, customer_name: str | None = None) -> NormalizedMessage:
    content, media_url, metadata = message.normalized()
    return NormalizedMessage(
        external_id=message.id,
        customer_id=message.from_,
        message_type=message.message_type,
        content=content,
        media_url=media_url,
        metadata=metadata,
        customer_name=customer_name,
    )
