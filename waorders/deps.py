# waorders/deps.py
from __future__ import annotations

from waorders.core.config import DEFAULT_TENANT_ID, META_VERIFY_TOKEN, WEBHOOK_PROCESS_INLINE
from waorders.whatsapp.service import WhatsAppWebhookService


def get_webhook_service() -> WhatsAppWebhookService:
    """Gateway built from process configuration; tests override this dependency."""
    return WhatsAppWebhookService(verify_token=META_VERIFY_TOKEN, default_tenant_id=DEFAULT_TENANT_ID)


def get_process_inline() -> bool:
    return WEBHOOK_PROCESS_INLINE
