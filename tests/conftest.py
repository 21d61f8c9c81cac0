import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import waorders.models  # noqa: F401
from waorders.core.database import Base, get_db, get_session_factory
from waorders.deps import get_process_inline, get_webhook_service
from waorders.routers.admin_whatsapp import router as admin_whatsapp_router
from waorders.routers.inbox import router as inbox_router
from waorders.routers.webhook import router as webhook_router
from waorders.whatsapp.service import WhatsAppWebhookService
from tests.fixtures_data import TENANT_ID, VERIFY_TOKEN


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield testing_session_local
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def webhook_service():
    return WhatsAppWebhookService(verify_token=VERIFY_TOKEN, default_tenant_id=TENANT_ID)


@pytest.fixture
def client(session_factory, webhook_service):
    app = FastAPI()
    app.include_router(webhook_router)
    app.include_router(inbox_router)
    app.include_router(admin_whatsapp_router)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service
    app.dependency_overrides[get_process_inline] = lambda: False
    return TestClient(app)
