import pytest
from sqlalchemy.exc import IntegrityError

from waorders.models.whatsapp_config import WhatsAppConfig
from tests.fixtures_data import OTHER_TENANT_ID, PHONE_NUMBER_ID, TENANT_ID


def test_get_config_returns_inactive_default_when_missing(client):
    response = client.get(f"/api/admin/{TENANT_ID}/whatsapp/config")

    assert response.status_code == 200
    body = response.json()
    assert body["tenant_id"] == TENANT_ID
    assert body["id"] is None
    assert body["is_active"] is False
    assert body["access_token_masked"] is None


def test_save_config_masks_access_token(client, db):
    response = client.put(
        f"/api/admin/{TENANT_ID}/whatsapp/config",
        json={
            "phone_number_id": f" {PHONE_NUMBER_ID} ",
            "access_token": "EAAG-super-secret-7890",
            "verify_token": "verify-me",
            "business_account_id": "  ",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["phone_number_id"] == PHONE_NUMBER_ID
    assert body["access_token_masked"] == "****7890"
    assert "access_token" not in body
    assert body["business_account_id"] is None
    assert body["is_active"] is True

    stored = db.query(WhatsAppConfig).one()
    assert stored.access_token == "EAAG-super-secret-7890"
    assert stored.verify_token == "verify-me"


def test_save_config_updates_existing_row(client, db):
    url = f"/api/admin/{TENANT_ID}/whatsapp/config"
    client.put(url, json={"phone_number_id": "1", "access_token": "token-one", "verify_token": "v1"})
    client.put(url, json={"phone_number_id": "2", "access_token": "token-two", "verify_token": "v2"})

    assert db.query(WhatsAppConfig).count() == 1
    assert client.get(url).json()["phone_number_id"] == "2"


def test_save_config_requires_credentials(client):
    response = client.put(f"/api/admin/{TENANT_ID}/whatsapp/config", json={"phone_number_id": "1"})

    assert response.status_code == 422


def test_phone_number_id_cannot_be_shared_between_tenants(client, db):
    body = {"phone_number_id": PHONE_NUMBER_ID, "access_token": "token-one", "verify_token": "v1"}

    first = client.put(f"/api/admin/{TENANT_ID}/whatsapp/config", json=body)
    second = client.put(f"/api/admin/{OTHER_TENANT_ID}/whatsapp/config", json=body)
    resaved = client.put(f"/api/admin/{TENANT_ID}/whatsapp/config", json={**body, "access_token": "token-two"})

    assert first.status_code == 200
    assert second.status_code == 409
    assert resaved.status_code == 200
    assert [(config.tenant_id, config.phone_number_id) for config in db.query(WhatsAppConfig).all()] == [
        (TENANT_ID, PHONE_NUMBER_ID)
    ]
    assert client.get(f"/api/admin/{OTHER_TENANT_ID}/whatsapp/config").json()["id"] is None


def test_phone_number_id_is_unique_in_the_table(db):
    db.add(WhatsAppConfig(tenant_id=TENANT_ID, phone_number_id=PHONE_NUMBER_ID))
    db.commit()
    db.add(WhatsAppConfig(tenant_id=OTHER_TENANT_ID, phone_number_id=PHONE_NUMBER_ID))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()
