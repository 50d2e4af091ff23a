from __future__ import annotations

import threading
from collections import deque

from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Direction, Message
from chatrelay.domain.entities.presence import SenderPresence
from chatrelay.domain.entities.thread_summary import ThreadSummary
from chatrelay.infrastructure.store.clock import MonotonicClock


class MemoryThreadStore(ThreadStorePort):
    def __init__(self) -> None:
        self._threads: dict[str, list[Message]] = {}
        self._presence: dict[str, SenderPresence] = {}
        self._events: dict[str, deque[str]] = {}
        self._lock = threading.Lock()
        self._clock = MonotonicClock()

    def append(self, sender: str, body: str, direction: Direction) -> Message:
        with self._lock:
            thread = self._threads.setdefault(sender, [])
            previous = thread[-1].timestamp if thread else None
            message = Message(
                sender=sender,
                body=body,
                direction=Direction(direction),
                timestamp=self._clock.now(previous),
            )
            thread.append(message)
            return message

    def list_ordered(self, sender: str) -> list[Message]:
        with self._lock:
            return list(self._threads.get(sender, []))

    def upsert_presence(self, sender: str) -> SenderPresence:
        with self._lock:
            existing = self._presence.get(sender)
            previous = existing.last_active_at if existing else None
            now = self._clock.now(previous)
            presence = SenderPresence(
                sender=sender,
                first_seen_at=existing.first_seen_at if existing else now,
                last_active_at=now,
            )
            self._presence[sender] = presence
            return presence

    def get_presence(self, sender: str) -> SenderPresence | None:
        with self._lock:
            return self._presence.get(sender)

    def list_presence(self) -> list[SenderPresence]:
        with self._lock:
            records = list(self._presence.values())
        return sorted(records, key=lambda p: p.last_active_at, reverse=True)

    def list_thread_summaries(self) -> list[ThreadSummary]:
        with self._lock:
            summaries = [
                ThreadSummary(
                    sender=sender,
                    last_message_body=thread[-1].body,
                    last_message_at=thread[-1].timestamp,
                )
                for sender, thread in self._threads.items()
                if thread
            ]
        return sorted(summaries, key=lambda s: s.last_message_at, reverse=True)

    def remember_event(self, sender: str, event_id: str, window: int) -> bool:
        with self._lock:
            seen = self._events.setdefault(sender, deque(maxlen=max(1, window)))
            if event_id in seen:
                return False
            seen.append(event_id)
            return True

    def forget_event(self, sender: str, event_id: str) -> None:
        with self._lock:
            seen = self._events.get(sender)
            if seen is not None and event_id in seen:
                seen.remove(event_id)
