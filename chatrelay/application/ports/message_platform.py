from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class DeliveryReceipt:
    recipient: str
    provider_message_id: str | None = None


class MessagePlatformPort(ABC):
    @abstractmethod
    def send_text(self, recipient_id: str, text: str) -> DeliveryReceipt:
        """Raises DeliveryError when the platform does not accept the message."""
        raise NotImplementedError
