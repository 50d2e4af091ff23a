from __future__ import annotations

from chatrelay.application.ports.message_platform import DeliveryReceipt, MessagePlatformPort
from chatrelay.infrastructure.whatsapp.whatsapp_client import WhatsAppClient


class WhatsAppPlatform(MessagePlatformPort):
    def __init__(self, client: WhatsAppClient) -> None:
        self._client = client

    def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        return self._client.send_text(recipient_id=recipient_id, text=text)
