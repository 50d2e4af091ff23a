from __future__ import annotations

import logging

from chatrelay.application.ports.message_platform import DeliveryReceipt, MessagePlatformPort


class MockWhatsAppPlatform(MessagePlatformPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.sent: list[tuple[str, str]] = []

    def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        self._logger.info("Mock send to WhatsApp", extra={"sender": recipient_id, "reason": text})
        self.sent.append((recipient_id, text))
        return DeliveryReceipt(recipient=recipient_id, provider_message_id=f"mock.{len(self.sent)}")
