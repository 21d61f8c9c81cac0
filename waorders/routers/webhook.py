import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session, sessionmaker

from waorders.core.database import get_db, get_session_factory
from waorders.deps import get_process_inline, get_webhook_service
from waorders.models.whatsapp_config import WhatsAppConfig
from waorders.whatsapp.base import safe_json, sanitize_payload
from waorders.whatsapp.cloud_provider import is_whatsapp_envelope, parse_cloud_webhook
from waorders.whatsapp.service import WhatsAppWebhookService, run_webhook_batch

router = APIRouter(tags=["whatsapp-webhook"])
logger = logging.getLogger(__name__)

EVENT_RECEIVED = "EVENT_RECEIVED"


def _verification_response(
    request: Request,
    service: WhatsAppWebhookService,
    expected_token: str | None = None,
) -> PlainTextResponse:
    qp = request.query_params
    result = service.verify_subscription(
        qp.get("hub.mode"),
        qp.get("hub.verify_token"),
        qp.get("hub.challenge"),
        expected_token=expected_token,
    )
    return PlainTextResponse(result.body, status_code=result.status_code)


async def _accept_delivery(
    request: Request,
    background_tasks: BackgroundTasks,
    service: WhatsAppWebhookService,
    session_factory: sessionmaker,
    process_inline: bool,
    tenant_id: int | None = None,
) -> PlainTextResponse:
    try:
        payload = await request.json()
        if not is_whatsapp_envelope(payload):
            logger.info("Ignoring webhook payload that is not a WhatsApp event", extra={"tenant_id": tenant_id})
            return PlainTextResponse(EVENT_RECEIVED)
        changes = parse_cloud_webhook(payload)
    except Exception:
        logger.exception("Error processing WhatsApp webhook", extra={"tenant_id": tenant_id})
        return PlainTextResponse("Internal Server Error", status_code=500)

    logger.debug("WhatsApp webhook received: %s", safe_json(sanitize_payload(payload)))

    if not changes:
        return PlainTextResponse(EVENT_RECEIVED)

    if process_inline:
        try:
            await run_in_threadpool(run_webhook_batch, session_factory, service, changes, tenant_id)
        except Exception:
            logger.exception("WhatsApp batch processing failed", extra={"tenant_id": tenant_id})
    else:
        background_tasks.add_task(run_webhook_batch, session_factory, service, changes, tenant_id)

    return PlainTextResponse(EVENT_RECEIVED)


@router.get("/whatsapp-webhook")
async def verify_webhook(
    request: Request,
    service: WhatsAppWebhookService = Depends(get_webhook_service),
):
    return _verification_response(request, service)


@router.post("/whatsapp-webhook")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    service: WhatsAppWebhookService = Depends(get_webhook_service),
    session_factory: sessionmaker = Depends(get_session_factory),
    process_inline: bool = Depends(get_process_inline),
):
    return await _accept_delivery(request, background_tasks, service, session_factory, process_inline)


def _tenant_verify_token(db: Session, tenant_id: int) -> str | None:
    config = db.query(WhatsAppConfig).filter(WhatsAppConfig.tenant_id == tenant_id).first()
    if config and config.verify_token:
        return config.verify_token
    return None


@router.get("/api/whatsapp/{tenant_id}/webhook")
def verify_webhook_tenant(
    tenant_id: int,
    request: Request,
    db: Session = Depends(get_db),
    service: WhatsAppWebhookService = Depends(get_webhook_service),
):
    return _verification_response(request, service, expected_token=_tenant_verify_token(db, tenant_id))


@router.post("/api/whatsapp/{tenant_id}/webhook")
async def whatsapp_webhook_tenant(
    tenant_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    service: WhatsAppWebhookService = Depends(get_webhook_service),
    session_factory: sessionmaker = Depends(get_session_factory),
    process_inline: bool = Depends(get_process_inline),
):
    return await _accept_delivery(
        request,
        background_tasks,
        service,
        session_factory,
        process_inline,
        tenant_id=tenant_id,
    )
