from __future__ import annotations

import logging

from chatrelay.application.exceptions import CompletionUnavailable, DeliveryError, StorageError
from chatrelay.application.ports.completion import CompletionPort
from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.application.use_cases.build_context import BuildContextUseCase
from chatrelay.application.use_cases.send_reply import ReplyNotRecorded, SendReplyUseCase
from chatrelay.domain.entities.message import Direction, InboundMessage
from chatrelay.domain.entities.turn import TurnOutcome, TurnStage, TurnStatus


class HandleIncomingMessageUseCase:
    """
    One relay turn: record the inbound message, replay the thread to the
    completion provider, deliver the reply and record it.

    Turns hold no state between calls; the store is the only thing shared.
    Two turns for the same sender may run at once and each builds context
    from whatever the store holds at that moment.
    """

    def __init__(
        self,
        store: ThreadStorePort,
        build_context: BuildContextUseCase,
        completion: CompletionPort,
        send_reply: SendReplyUseCase,
        dedupe_events: bool = False,
        dedupe_window: int = 100,
    ) -> None:
        self._store = store
        self._build_context = build_context
        self._completion = completion
        self._send_reply = send_reply
        self._dedupe_events = dedupe_events
        self._dedupe_window = dedupe_window
        self._logger = logging.getLogger(__name__)

    def handle(self, message: InboundMessage | None) -> TurnOutcome:
        if message is None or not message.sender or not message.body:
            self._logger.info("Empty inbound event ignored", extra={"stage": TurnStage.RECEIVED.value})
            return TurnOutcome(status=TurnStatus.IGNORED, stage=TurnStage.RECEIVED)

        sender = message.sender
        remembered = False

        try:
            if self._dedupe_events and message.event_id:
                if not self._store.remember_event(sender, message.event_id, self._dedupe_window):
                    return self._finish(
                        TurnOutcome(
                            status=TurnStatus.DUPLICATE,
                            stage=TurnStage.RECEIVED,
                            sender=sender,
                            reason=f"event {message.event_id} already relayed",
                        )
                    )
                remembered = True
            self._store.upsert_presence(sender)
            self._store.append(sender, message.body, Direction.INBOUND)
        except StorageError as e:
            if remembered:
                self._release_event(sender, message.event_id)
            return self._finish(
                TurnOutcome(
                    status=TurnStatus.ABORTED_NO_PERSIST,
                    stage=TurnStage.RECEIVED,
                    sender=sender,
                    reason=f"inbound not recorded: {e}",
                )
            )

        try:
            context = self._build_context.execute(sender)
        except StorageError as e:
            return self._finish(
                TurnOutcome(
                    status=TurnStatus.ABORTED_NO_REPLY,
                    stage=TurnStage.PERSISTED_INBOUND,
                    sender=sender,
                    reason=f"context unavailable: {e}",
                )
            )

        try:
            reply = self._completion.complete(context)
        except CompletionUnavailable as e:
            return self._finish(
                TurnOutcome(
                    status=TurnStatus.ABORTED_NO_REPLY,
                    stage=TurnStage.CONTEXT_BUILT,
                    sender=sender,
                    reason=f"completion failed: {e}",
                )
            )

        try:
            self._send_reply.execute(sender, reply)
        except DeliveryError as e:
            return self._finish(
                TurnOutcome(
                    status=TurnStatus.ABORTED_DELIVERY,
                    stage=TurnStage.COMPLETED,
                    sender=sender,
                    reply_text=reply,
                    reason=f"delivery failed: {e}",
                )
            )
        except ReplyNotRecorded as e:
            return self._finish(
                TurnOutcome(
                    status=TurnStatus.ABORTED_NO_PERSIST,
                    stage=TurnStage.DISPATCHED,
                    sender=sender,
                    reply_text=reply,
                    reason=f"reply delivered but not recorded: {e}",
                )
            )

        return self._finish(
            TurnOutcome(
                status=TurnStatus.DONE,
                stage=TurnStage.PERSISTED_OUTBOUND,
                sender=sender,
                reply_text=reply,
            )
        )

    def _release_event(self, sender: str, event_id: str) -> None:
        # The inbound was never recorded, so a redelivery must not count as a duplicate.
        try:
            self._store.forget_event(sender, event_id)
        except StorageError as e:
            self._logger.error(
                "Event id kept after failed inbound write",
                extra={"sender": sender, "event_id": event_id, "error": str(e)},
            )

    def _finish(self, outcome: TurnOutcome) -> TurnOutcome:
        extra = {
            "sender": outcome.sender,
            "stage": outcome.stage.value,
            "outcome": outcome.status.value,
            "reason": outcome.reason,
        }
        if outcome.status is TurnStatus.DONE:
            self._logger.info("Turn complete", extra=extra)
        elif outcome.status is TurnStatus.DUPLICATE:
            self._logger.info("Duplicate event ignored", extra=extra)
        elif outcome.status is TurnStatus.ABORTED_NO_PERSIST and outcome.stage is TurnStage.DISPATCHED:
            self._logger.error("Reply sent but lost from thread", extra=extra)
        else:
            self._logger.warning("Turn aborted", extra=extra)
        return outcome
