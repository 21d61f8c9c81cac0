from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_TENANT_ID_CTX: ContextVar[str | None] = ContextVar("tenant_id", default=None)


def set_request_context(*, request_id: str | None = None, tenant_id: str | None = None) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if tenant_id is not None:
        _TENANT_ID_CTX.set(tenant_id)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_tenant_id() -> str | None:
    return _TENANT_ID_CTX.get()


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _TENANT_ID_CTX.set(None)


@contextmanager
def tenant_log_context(tenant_id: int | str | None) -> Iterator[None]:
    """Tag log lines emitted outside a request (webhook batches) with a tenant."""
    token = _TENANT_ID_CTX.set(str(tenant_id) if tenant_id is not None else None)
    try:
        yield
    finally:
        _TENANT_ID_CTX.reset(token)
