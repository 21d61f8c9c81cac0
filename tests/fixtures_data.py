"""Reusable WhatsApp Cloud API payloads for webhook and inbox tests."""

VERIFY_TOKEN = "verify-secret-123"
TENANT_ID = 1
OTHER_TENANT_ID = 2
PHONE_NUMBER_ID = "106540352242922"
CUSTOMER_PHONE = "+15551234567"


def text_message(message_id: str, body: str = "Hi, is the blue dress in stock?", sender: str = CUSTOMER_PHONE) -> dict:
    return {
        "from": sender,
        "id": message_id,
        "timestamp": "1717000000",
        "type": "text",
        "text": {"body": body},
    }


def image_message(message_id: str, caption: str | None = None, sender: str = CUSTOMER_PHONE) -> dict:
    image = {"id": "media-img-1", "mime_type": "image/png", "sha256": "abc"}
    if caption is not None:
        image["caption"] = caption
    return {"from": sender, "id": message_id, "type": "image", "image": image}


def status_update(message_id: str, status: str) -> dict:
    return {
        "id": message_id,
        "status": status,
        "timestamp": "1717000100",
        "recipient_id": CUSTOMER_PHONE,
    }


def webhook_payload(
    messages: list | None = None,
    statuses: list | None = None,
    phone_number_id: str = PHONE_NUMBER_ID,
    contact_name: str | None = "Jane Customer",
) -> dict:
    value: dict = {
        "messaging_product": "whatsapp",
        "metadata": {"display_phone_number": "15550001111", "phone_number_id": phone_number_id},
    }
    if contact_name:
        value["contacts"] = [{"profile": {"name": contact_name}, "wa_id": CUSTOMER_PHONE}]
    if messages is not None:
        value["messages"] = messages
    if statuses is not None:
        value["statuses"] = statuses
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WHATSAPP_BUSINESS_ACCOUNT_ID",
                "changes": [{"field": "messages", "value": value}],
            }
        ],
    }
