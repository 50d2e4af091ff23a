from __future__ import annotations

import json

import httpx
import pytest

from chatrelay.application.exceptions import DeliveryError
from chatrelay.infrastructure.whatsapp.whatsapp_client import WhatsAppClient
from chatrelay.infrastructure.whatsapp.whatsapp_platform import WhatsAppPlatform


def _client(handler) -> WhatsAppClient:
    return WhatsAppClient(
        access_token="EAAG-token",
        phone_number_id="1234567890",
        api_version="v19.0",
        transport=httpx.MockTransport(handler),
    )


def test_send_text_posts_cloud_api_payload():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"messaging_product": "whatsapp", "messages": [{"id": "wamid.abc"}]})

    receipt = WhatsAppPlatform(_client(handler)).send_text("911234567890", "Hello! ...")

    assert receipt.recipient == "911234567890"
    assert receipt.provider_message_id == "wamid.abc"
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://graph.facebook.com/v19.0/1234567890/messages"
    assert request.headers["Authorization"] == "Bearer EAAG-token"
    assert json.loads(request.content) == {
        "messaging_product": "whatsapp",
        "to": "911234567890",
        "type": "text",
        "text": {"body": "Hello! ..."},
    }


def test_error_status_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"code": 190, "message": "Invalid OAuth access token"}})

    with pytest.raises(DeliveryError) as excinfo:
        _client(handler).send_text("911234567890", "hi")

    assert excinfo.value.status_code == 401
    assert "Invalid OAuth access token" in str(excinfo.value)


def test_network_failure_raises_delivery_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(DeliveryError):
        _client(handler).send_text("911234567890", "hi")


def test_success_without_json_body_still_delivered():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="ok")

    receipt = _client(handler).send_text("911234567890", "hi")

    assert receipt.provider_message_id is None
