from __future__ import annotations

import logging

import httpx

from chatrelay.application.exceptions import DeliveryError
from chatrelay.application.ports.message_platform import DeliveryReceipt


class WhatsAppClient:
    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        api_version: str = "v19.0",
        base_url: str = "https://graph.facebook.com",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._access_token = access_token
        self._send_endpoint = f"{base_url.rstrip('/')}/{api_version}/{phone_number_id}/messages"
        self._client = httpx.Client(timeout=timeout, transport=transport)
        self._logger = logging.getLogger(__name__)

    def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient_id,
            "type": "text",
            "text": {"body": text},
        }
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = self._client.post(self._send_endpoint, headers=headers, json=payload)
        except httpx.HTTPError as e:
            self._logger.error(
                "WhatsApp send failed",
                extra={"sender": recipient_id, "error": f"{type(e).__name__}: {e}"},
            )
            raise DeliveryError(f"WhatsApp API unreachable: {e}") from e

        if resp.status_code >= 400:
            error_body = resp.text
            try:
                error_json = resp.json()
                error_code = error_json.get("error", {}).get("code")
                error_message = error_json.get("error", {}).get("message")
            except ValueError:
                error_code = None
                error_message = error_body

            self._logger.error(
                "WhatsApp send failed",
                extra={
                    "sender": recipient_id,
                    "error": f"status={resp.status_code} code={error_code} message={error_message}",
                },
            )
            raise DeliveryError(
                f"WhatsApp API returned {resp.status_code}: {error_message}",
                status_code=resp.status_code,
            )

        provider_id = None
        try:
            messages = resp.json().get("messages") or []
            if messages:
                provider_id = messages[0].get("id")
        except (ValueError, AttributeError):
            self._logger.warning("WhatsApp send response was not JSON", extra={"sender": recipient_id})

        return DeliveryReceipt(recipient=recipient_id, provider_message_id=provider_id)
