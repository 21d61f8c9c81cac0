from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from waorders.core.database import get_db
from waorders.models.whatsapp_config import WhatsAppConfig
from waorders.whatsapp.base import mask_value

router = APIRouter(prefix="/api/admin", tags=["admin-whatsapp"])
logger = logging.getLogger(__name__)

PHONE_NUMBER_IN_USE = "phone_number_id is already linked to another store"


class WhatsAppConfigRead(BaseModel):
    id: Optional[int] = None
    tenant_id: int
    phone_number_id: Optional[str] = None
    business_account_id: Optional[str] = None
    access_token_masked: Optional[str] = None
    verify_token: Optional[str] = None
    webhook_url: Optional[str] = None
    is_active: bool = False


class WhatsAppConfigUpdate(BaseModel):
    phone_number_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    verify_token: str = Field(..., min_length=1)
    business_account_id: Optional[str] = None
    webhook_url: Optional[str] = None


def _serialize_config(config: WhatsAppConfig) -> dict:
    return {
        "id": config.id,
        "tenant_id": config.tenant_id,
        "phone_number_id": config.phone_number_id,
        "business_account_id": config.business_account_id,
        "access_token_masked": mask_value(config.access_token) if config.access_token else None,
        "verify_token": config.verify_token,
        "webhook_url": config.webhook_url,
        "is_active": bool(config.is_active),
    }


def _strip_or_none(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip() or None


@router.get("/{tenant_id}/whatsapp/config", response_model=WhatsAppConfigRead)
def get_whatsapp_config(tenant_id: int, db: Session = Depends(get_db)):
    config = db.query(WhatsAppConfig).filter(WhatsAppConfig.tenant_id == tenant_id).first()
    if not config:
        return WhatsAppConfigRead(tenant_id=tenant_id)
    return _serialize_config(config)


@router.put("/{tenant_id}/whatsapp/config", response_model=WhatsAppConfigRead)
def save_whatsapp_config(tenant_id: int, payload: WhatsAppConfigUpdate, db: Session = Depends(get_db)):
    phone_number_id = payload.phone_number_id.strip()
    owner = (
        db.query(WhatsAppConfig)
        .filter(WhatsAppConfig.phone_number_id == phone_number_id, WhatsAppConfig.tenant_id != tenant_id)
        .first()
    )
    if owner is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=PHONE_NUMBER_IN_USE)

    config = db.query(WhatsAppConfig).filter(WhatsAppConfig.tenant_id == tenant_id).first()
    if not config:
        config = WhatsAppConfig(tenant_id=tenant_id)
        db.add(config)

    config.phone_number_id = phone_number_id
    config.access_token = payload.access_token.strip()
    config.verify_token = payload.verify_token.strip()
    config.business_account_id = _strip_or_none(payload.business_account_id)
    config.webhook_url = _strip_or_none(payload.webhook_url)
    config.is_active = True

    try:
        db.commit()
    except IntegrityError:
        # another store claimed the number between the check and the commit
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=PHONE_NUMBER_IN_USE)
    db.refresh(config)
    logger.info("WhatsApp config saved", extra={"tenant_id": tenant_id})
    return _serialize_config(config)
