import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from waorders.core.config import CORS_ORIGINS, DATABASE_URL, DEFAULT_TENANT_ID, META_VERIFY_TOKEN
from waorders.core.database import Base, engine
from waorders.core.logging_setup import configure_logging
from waorders.core.startup_checks import (
    ensure_migrations_applied,
    validate_database_environment,
    validate_webhook_configuration,
)
from waorders.middleware.observability import ObservabilityMiddleware
import waorders.models  # noqa: F401  models must be registered before create_all

from waorders.routers.admin_whatsapp import router as admin_whatsapp_router
from waorders.routers.inbox import router as inbox_router
from waorders.routers.internal_metrics import router as internal_metrics_router
from waorders.routers.webhook import router as webhook_router

configure_logging()

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)


def _startup_tasks() -> None:
    try:
        validate_database_environment()
        validate_webhook_configuration(verify_token=META_VERIFY_TOKEN, default_tenant_id=DEFAULT_TENANT_ID)
        if DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="waorders inbox API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ObservabilityMiddleware)

# Routers
app.include_router(webhook_router)
app.include_router(inbox_router)
app.include_router(admin_whatsapp_router)
app.include_router(internal_metrics_router)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
