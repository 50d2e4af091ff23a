from __future__ import annotations

import logging

from chatrelay.application.exceptions import StorageError
from chatrelay.application.ports.message_platform import DeliveryReceipt, MessagePlatformPort
from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Direction, Message


class ReplyNotRecorded(StorageError):
    """The reply reached the recipient but could not be written to the thread."""

    def __init__(self, message: str, receipt: DeliveryReceipt) -> None:
        super().__init__(message)
        self.receipt = receipt


class SendReplyUseCase:
    """
    Outbound half of a turn: deliver, then record what was said.

    Shared by the automated relay and the operator's manual reply.
    DeliveryError from the platform propagates untouched and nothing is
    recorded. A store failure after a successful delivery is raised as
    ReplyNotRecorded so callers can report the lost record.
    """

    def __init__(self, platform: MessagePlatformPort, store: ThreadStorePort) -> None:
        self._platform = platform
        self._store = store
        self._logger = logging.getLogger(__name__)

    def execute(self, recipient: str, text: str) -> tuple[DeliveryReceipt, Message]:
        receipt = self._platform.send_text(recipient_id=recipient, text=text)
        self._logger.info(
            "Reply delivered",
            extra={"sender": recipient, "event_id": receipt.provider_message_id},
        )

        try:
            message = self._store.append(recipient, text, Direction.OUTBOUND)
            self._store.upsert_presence(recipient)
        except StorageError as e:
            raise ReplyNotRecorded(str(e), receipt) from e

        return receipt, message
