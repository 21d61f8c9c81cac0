from waorders.services import inbox
from tests.fixtures_data import CUSTOMER_PHONE, OTHER_TENANT_ID, TENANT_ID


def _seed(db, external_id="wamid.AAA", **overrides):
    fields = {
        "tenant_id": TENANT_ID,
        "channel": "whatsapp",
        "customer_id": CUSTOMER_PHONE,
        "message_type": "text",
        "content": "Do you deliver on Sundays?",
    }
    fields.update(overrides)
    return inbox.ingest_inbound_message(db, external_message_id=external_id, **fields)


def test_list_conversations_is_scoped_by_tenant_and_channel(client, db):
    mine = _seed(db)
    _seed(db, "ig.1", channel="instagram", customer_id="ig-user")
    _seed(db, "wamid.OTHER", tenant_id=OTHER_TENANT_ID)

    response = client.get(f"/api/inbox/{TENANT_ID}/conversations", params={"channel": "whatsapp"})

    assert response.status_code == 200
    body = response.json()
    assert [conversation["id"] for conversation in body] == [mine.conversation_id]
    assert body[0]["unread_count"] == 1
    assert body[0]["tags"] == []
    assert body[0]["last_message"] == "Do you deliver on Sundays?"

    everything = client.get(f"/api/inbox/{TENANT_ID}/conversations").json()
    assert len(everything) == 2


def test_list_conversations_rejects_unknown_channel(client):
    response = client.get(f"/api/inbox/{TENANT_ID}/conversations", params={"channel": "fax"})

    assert response.status_code == 422


def test_message_history_and_agent_reply(client, db):
    seeded = _seed(db, metadata={"mimeType": "text/plain"})
    base = f"/api/inbox/{TENANT_ID}/conversations/{seeded.conversation_id}"

    reply = client.post(f"{base}/messages", json={"agent_id": "agent-7", "content": "Yes, we do"})
    assert reply.status_code == 201
    reply_id = reply.json()["message_id"]

    history = client.get(f"{base}/messages")
    assert history.status_code == 200
    messages = history.json()
    assert [message["id"] for message in messages] == [seeded.message_id, reply_id]
    assert messages[0]["sender_type"] == "customer"
    assert messages[0]["metadata"] == {"mimeType": "text/plain"}
    assert messages[0]["external_id"] == "wamid.AAA"
    assert messages[1]["sender_type"] == "agent"
    assert messages[1]["status"] == "sent"

    conversation = client.get(f"/api/inbox/{TENANT_ID}/conversations").json()[0]
    assert conversation["last_message"] == "Yes, we do"
    assert conversation["unread_count"] == 1


def test_agent_reply_validation(client, db):
    seeded = _seed(db)
    base = f"/api/inbox/{TENANT_ID}/conversations/{seeded.conversation_id}"

    assert client.post(f"{base}/messages", json={"agent_id": "agent-7", "content": ""}).status_code == 422
    assert (
        client.post(f"{base}/messages", json={"agent_id": "agent-7", "content": "x", "message_type": "sticker"}).status_code
        == 422
    )


def test_conversation_of_another_tenant_is_not_found(client, db):
    seeded = _seed(db)
    base = f"/api/inbox/{OTHER_TENANT_ID}/conversations/{seeded.conversation_id}"

    assert client.get(f"{base}/messages").status_code == 404
    assert client.post(f"{base}/messages", json={"agent_id": "a", "content": "hi"}).status_code == 404
    assert client.post(f"{base}/read").status_code == 404
    assert client.patch(f"{base}/status", json={"status": "resolved"}).status_code == 404


def test_mark_read(client, db):
    seeded = _seed(db)
    _seed(db, "wamid.BBB")

    response = client.post(f"/api/inbox/{TENANT_ID}/conversations/{seeded.conversation_id}/read")

    assert response.status_code == 200
    assert response.json()["unread_count"] == 0


def test_status_changes(client, db):
    seeded = _seed(db)
    url = f"/api/inbox/{TENANT_ID}/conversations/{seeded.conversation_id}/status"

    resolved = client.patch(url, json={"status": "resolved"})
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"

    assert client.patch(url, json={"status": "archived"}).json()["status"] == "archived"

    invalid = client.patch(url, json={"status": "resolved"})
    assert invalid.status_code == 400
    assert "archived" in invalid.json()["detail"]

    assert client.patch(url, json={"status": "snoozed"}).status_code == 422


def test_assignment_and_tags(client, db):
    seeded = _seed(db)
    base = f"/api/inbox/{TENANT_ID}/conversations/{seeded.conversation_id}"

    assigned = client.patch(f"{base}/assignment", json={"assigned_to": "agent-7"})
    assert assigned.status_code == 200
    assert assigned.json()["assigned_to"] == "agent-7"

    unassigned = client.patch(f"{base}/assignment", json={"assigned_to": None})
    assert unassigned.json()["assigned_to"] is None

    tagged = client.put(f"{base}/tags", json={"tags": ["vip", " vip", "wholesale"]})
    assert tagged.status_code == 200
    assert tagged.json()["tags"] == ["vip", "wholesale"]
