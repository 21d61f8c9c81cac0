from fastapi.testclient import TestClient


REQUIRED_ROUTES = {
    "/whatsapp-webhook",
    "/api/whatsapp/{tenant_id}/webhook",
    "/api/inbox/{tenant_id}/conversations",
    "/api/inbox/{tenant_id}/conversations/{conversation_id}/messages",
    "/api/inbox/{tenant_id}/conversations/{conversation_id}/read",
    "/api/inbox/{tenant_id}/conversations/{conversation_id}/status",
    "/api/inbox/{tenant_id}/conversations/{conversation_id}/assignment",
    "/api/inbox/{tenant_id}/conversations/{conversation_id}/tags",
    "/api/admin/{tenant_id}/whatsapp/config",
    "/internal/metrics",
    "/health",
}


def test_api_startup_and_router_registration(monkeypatch):
    from waorders import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/")
        health_response = client.get("/health")
        docs_response = client.get("/docs")
        openapi_response = client.get("/openapi.json")
        metrics_response = client.get("/internal/metrics")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert health_response.json() == {"status": "healthy"}
    assert docs_response.status_code == 200
    assert openapi_response.status_code == 200
    assert response.headers["X-Request-ID"]

    assert metrics_response.status_code == 200
    snapshot = metrics_response.json()
    assert set(snapshot) == {"requests", "webhook"}
    assert "GET /" in snapshot["requests"]

    paths = set(openapi_response.json()["paths"])
    assert REQUIRED_ROUTES.issubset(paths)
