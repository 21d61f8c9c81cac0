import json
import logging

from waorders.core.logging_setup import JsonFormatter, configure_logging
from waorders.core.request_context import clear_request_context, set_request_context
from waorders.whatsapp.base import mask_value, sanitize_payload


def _record(message, **extra):
    record = logging.LogRecord("waorders.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_and_extra_fields():
    set_request_context(request_id="req-1", tenant_id="7")
    try:
        line = JsonFormatter("%(message)s").format(
            _record("WhatsApp message ingested", external_message_id="wamid.AAA", outcome="created")
        )
    finally:
        clear_request_context()

    payload = json.loads(line)
    assert payload["message"] == "WhatsApp message ingested"
    assert payload["request_id"] == "req-1"
    assert payload["tenant_id"] == "7"
    assert payload["external_message_id"] == "wamid.AAA"
    assert payload["outcome"] == "created"
    assert "conversation_id" not in payload


def test_json_formatter_masks_secrets_in_message():
    line = JsonFormatter("%(message)s").format(_record("calling with access_token=abc123 verify_token=xyz"))

    message = json.loads(line)["message"]
    assert "abc123" not in message
    assert "xyz" not in message


def test_sanitize_payload_masks_nested_tokens():
    payload = {"entry": [{"access_token": "EAAGsecret1234", "value": {"hub.verify_token": "abc"}}], "id": "1"}

    assert sanitize_payload(payload) == {
        "entry": [{"access_token": "****1234", "value": {"hub.verify_token": "****"}}],
        "id": "1",
    }
    assert mask_value(None) is None


def test_configured_root_handler_writes_json_lines(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging()
        logging.getLogger("waorders.whatsapp.service").warning(
            "WhatsApp message not saved",
            extra={"tenant_id": 3, "external_message_id": "wamid.LOST", "outcome": "failed", "reason": "boom"},
        )
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    err = capsys.readouterr().err
    assert "Logging error" not in err
    payload = json.loads(err.strip().splitlines()[-1])
    assert payload["message"] == "WhatsApp message not saved"
    assert payload["level"] == "WARNING"
    assert payload["tenant_id"] == 3
    assert payload["external_message_id"] == "wamid.LOST"
    assert payload["reason"] == "boom"
