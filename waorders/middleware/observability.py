from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from waorders.core.metrics import request_metrics
from waorders.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request id propagation, per-route timing and one log line per request.

    Metrics are keyed by the matched route template so tenant and conversation ids
    in the path do not create a series each.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            endpoint = _route_template(request)
            tenant_id = _tenant_from_request(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)

            set_request_context(tenant_id=tenant_id)
            request_metrics.observe(endpoint=endpoint, method=request.method, status_code=status_code, duration_ms=duration_ms)

            # provider retries on 5xx, so those are worth a warning
            level = logging.WARNING if status_code >= 500 else logging.INFO
            logger.log(
                level,
                "request completed",
                extra={
                    "request_id": request_id,
                    "tenant_id": tenant_id,
                    "endpoint": endpoint,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request_id
            clear_request_context()


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _tenant_from_request(request: Request) -> str | None:
    tenant = request.path_params.get("tenant_id")
    if tenant:
        return str(tenant)
    return request.headers.get("X-Tenant-ID")
