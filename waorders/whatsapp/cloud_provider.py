from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from waorders.whatsapp.payloads import (
    WHATSAPP_OBJECT,
    NormalizedMessage,
    RejectedMessage,
    StatusUpdate,
    inbound_message_adapter,
    normalize_message,
)

logger = logging.getLogger(__name__)


@dataclass
class WebhookChange:
    """One ``messages`` change of a Cloud API delivery, already normalized."""

    phone_number_id: str | None = None
    display_phone_number: str | None = None
    messages: list[NormalizedMessage | RejectedMessage] = field(default_factory=list)
    statuses: list[StatusUpdate] = field(default_factory=list)
    rejected_statuses: int = 0


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def is_whatsapp_envelope(payload: Any) -> bool:
    return isinstance(payload, dict) and payload.get("object") == WHATSAPP_OBJECT


def _contact_names(value: dict[str, Any]) -> dict[str, str]:
    names: dict[str, str] = {}
    for contact in _as_list(value.get("contacts")):
        contact = _as_dict(contact)
        wa_id = contact.get("wa_id")
        name = _as_dict(contact.get("profile")).get("name")
        if isinstance(wa_id, str) and isinstance(name, str) and name.strip():
            names[wa_id] = name.strip()
    return names


def _validation_reason(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "invalid message"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def _parse_message(raw: Any, position: int, names: dict[str, str]) -> NormalizedMessage | RejectedMessage:
    external_id = _as_dict(raw).get("id")
    external_id = external_id if isinstance(external_id, str) else None
    try:
        message = inbound_message_adapter.validate_python(raw)
    except ValidationError as exc:
        return RejectedMessage(position=position, reason=_validation_reason(exc), external_id=external_id)
    return normalize_message(message, customer_name=names.get(message.from_))


def parse_cloud_webhook(payload: dict[str, Any]) -> list[WebhookChange]:
    """Walk entry -> changes -> value, keeping only ``messages`` changes.

    Every level is optional; shapes that do not match are skipped rather than
    raising, and each message is validated on its own.
    """
    changes: list[WebhookChange] = []
    for entry in _as_list(payload.get("entry")):
        for change in _as_list(_as_dict(entry).get("changes")):
            change = _as_dict(change)
            if change.get("field") != "messages":
                continue

            value = _as_dict(change.get("value"))
            metadata = _as_dict(value.get("metadata"))
            names = _contact_names(value)
            parsed = WebhookChange(
                phone_number_id=metadata.get("phone_number_id"),
                display_phone_number=metadata.get("display_phone_number"),
            )

            for position, raw in enumerate(_as_list(value.get("messages"))):
                parsed.messages.append(_parse_message(raw, position, names))

            for raw_status in _as_list(value.get("statuses")):
                try:
                    parsed.statuses.append(StatusUpdate.model_validate(raw_status))
                except ValidationError:
                    parsed.rejected_statuses += 1
                    logger.warning("WhatsApp status update ignored: malformed payload")

            changes.append(parsed)
    return changes
