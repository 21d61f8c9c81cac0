from __future__ import annotations

import hmac
import logging
from dataclasses import asdict, dataclass
from typing import Callable

from sqlalchemy.orm import Session

from waorders.core.metrics import webhook_metrics
from waorders.core.request_context import tenant_log_context
from waorders.models.whatsapp_config import WhatsAppConfig
from waorders.services.inbox import (
    OUTCOME_CREATED,
    OUTCOME_DUPLICATE,
    IngestResult,
    InboxError,
    apply_status_update,
    ingest_inbound_message,
)
from waorders.whatsapp.cloud_provider import WebhookChange
from waorders.whatsapp.payloads import NormalizedMessage, RejectedMessage, StatusUpdate

logger = logging.getLogger(__name__)

SUBSCRIBE_MODE = "subscribe"


@dataclass
class VerificationResult:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


@dataclass
class WebhookBatchSummary:
    created: int = 0
    duplicate: int = 0
    failed: int = 0
    statuses_applied: int = 0
    statuses_ignored: int = 0

    def record(self, result: IngestResult) -> None:
        if result.outcome == OUTCOME_CREATED:
            self.created += 1
        elif result.outcome == OUTCOME_DUPLICATE:
            self.duplicate += 1
        else:
            self.failed += 1

    def merge(self, other: "WebhookBatchSummary") -> None:
        for key, value in asdict(other).items():
            setattr(self, key, getattr(self, key) + value)

    def as_counts(self) -> dict[str, int]:
        return asdict(self)


class WhatsAppWebhookService:
    """Provider-facing side of the inbox: handshake and batch ingestion."""

    CHANNEL = "whatsapp"

    def __init__(self, *, verify_token: str, default_tenant_id: int) -> None:
        self._verify_token = verify_token
        self._default_tenant_id = default_tenant_id

    def verify_subscription(
        self,
        mode: str | None,
        token: str | None,
        challenge: str | None,
        *,
        expected_token: str | None = None,
    ) -> VerificationResult:
        if not mode or not token:
            return VerificationResult(400, "Bad Request: missing hub.mode or hub.verify_token")

        secret = expected_token or self._verify_token
        if mode == SUBSCRIBE_MODE and secret and hmac.compare_digest(token.encode(), secret.encode()):
            logger.info("WhatsApp webhook verified")
            return VerificationResult(200, challenge or "")

        logger.warning("WhatsApp webhook verification failed", extra={"reason": f"mode={mode}"})
        return VerificationResult(403, "Forbidden")

    def resolve_tenant_id(self, db: Session, phone_number_id: str | None) -> int:
        if phone_number_id:
            config = (
                db.query(WhatsAppConfig)
                .filter(WhatsAppConfig.phone_number_id == str(phone_number_id))
                .first()
            )
            if config is not None:
                return config.tenant_id
        return self._default_tenant_id

    def process_changes(
        self,
        db: Session,
        changes: list[WebhookChange],
        *,
        tenant_id: int | None = None,
    ) -> WebhookBatchSummary:
        total = WebhookBatchSummary()
        for change in changes:
            try:
                change_tenant_id = (
                    tenant_id if tenant_id is not None else self.resolve_tenant_id(db, change.phone_number_id)
                )
            except Exception as exc:
                db.rollback()
                logger.exception(
                    "WhatsApp tenant resolution failed",
                    extra={"reason": f"phone_number_id={change.phone_number_id} {type(exc).__name__}"},
                )
                total.failed += len(change.messages)
                total.statuses_ignored += len(change.statuses) + change.rejected_statuses
                continue

            with tenant_log_context(change_tenant_id):
                summary = self._process_change(db, change, change_tenant_id)
            total.merge(summary)
        return total

    def _process_change(self, db: Session, change: WebhookChange, tenant_id: int) -> WebhookBatchSummary:
        summary = WebhookBatchSummary(statuses_ignored=change.rejected_statuses)

        for item in change.messages:
            if isinstance(item, RejectedMessage):
                summary.failed += 1
                logger.warning(
                    "WhatsApp message rejected",
                    extra={
                        "tenant_id": tenant_id,
                        "external_message_id": item.external_id,
                        "outcome": "failed",
                        "reason": item.reason,
                    },
                )
                continue
            summary.record(self._ingest(db, tenant_id, item))

        for status in change.statuses:
            if self._apply_status(db, tenant_id, status):
                summary.statuses_applied += 1
            else:
                summary.statuses_ignored += 1

        webhook_metrics.record(tenant_id, summary.as_counts())
        logger.info(
            "WhatsApp batch processed",
            extra={"tenant_id": tenant_id, "batch": summary.as_counts()},
        )
        return summary

    def _ingest(self, db: Session, tenant_id: int, message: NormalizedMessage) -> IngestResult:
        log_extra = {"tenant_id": tenant_id, "external_message_id": message.external_id}
        try:
            result = ingest_inbound_message(
                db,
                tenant_id=tenant_id,
                channel=self.CHANNEL,
                customer_id=message.customer_id,
                external_message_id=message.external_id,
                message_type=message.message_type,
                content=message.content,
                media_url=message.media_url,
                metadata=message.metadata,
                customer_name=message.customer_name,
            )
        except InboxError as exc:
            db.rollback()
            result = IngestResult.failed(str(exc))
            logger.warning("WhatsApp message not saved", extra={**log_extra, "outcome": result.outcome, "reason": result.reason})
            return result
        except Exception as exc:
            db.rollback()
            result = IngestResult.failed(f"{type(exc).__name__}: {exc}")
            logger.exception("WhatsApp message not saved", extra={**log_extra, "outcome": result.outcome, "reason": result.reason})
            return result

        logger.info(
            "WhatsApp message ingested",
            extra={**log_extra, "conversation_id": result.conversation_id, "outcome": result.outcome},
        )
        return result

    def _apply_status(self, db: Session, tenant_id: int, status: StatusUpdate) -> bool:
        log_extra = {"tenant_id": tenant_id, "external_message_id": status.id}
        logger.info("WhatsApp status update", extra={**log_extra, "outcome": status.status})
        try:
            applied = apply_status_update(db, external_message_id=status.id, status=status.status)
        except InboxError as exc:
            logger.warning("WhatsApp status update ignored", extra={**log_extra, "reason": str(exc)})
            return False
        except Exception as exc:
            db.rollback()
            logger.exception("WhatsApp status update failed", extra={**log_extra, "reason": str(exc)})
            return False
        return applied


def run_webhook_batch(
    session_factory: Callable[[], Session],
    service: WhatsAppWebhookService,
    changes: list[WebhookChange],
    tenant_id: int | None = None,
) -> WebhookBatchSummary:
    """Process a parsed delivery with a session of its own (runs after the ack)."""
    db = session_factory()
    try:
        return service.process_changes(db, changes, tenant_id=tenant_id)
    finally:
        db.close()
