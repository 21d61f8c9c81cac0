from __future__ import annotations

from fastapi import APIRouter

from waorders.core.metrics import request_metrics, webhook_metrics

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def metrics_snapshot():
    return {
        "requests": request_metrics.snapshot(),
        "webhook": webhook_metrics.snapshot(),
    }
