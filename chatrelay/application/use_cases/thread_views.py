from __future__ import annotations

from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Message
from chatrelay.domain.entities.presence import SenderPresence
from chatrelay.domain.entities.thread_summary import ThreadSummary


class ThreadViewsUseCase:
    """Read-only operator views over the thread store."""

    def __init__(self, store: ThreadStorePort) -> None:
        self._store = store

    def summaries(self) -> list[ThreadSummary]:
        return self._store.list_thread_summaries()

    def transcript(self, sender: str) -> list[Message]:
        return self._store.list_ordered(sender)

    def senders(self) -> list[SenderPresence]:
        return self._store.list_presence()
