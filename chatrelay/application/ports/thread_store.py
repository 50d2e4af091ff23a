from abc import ABC, abstractmethod

from chatrelay.domain.entities.message import Direction, Message
from chatrelay.domain.entities.presence import SenderPresence
from chatrelay.domain.entities.thread_summary import ThreadSummary


class ThreadStorePort(ABC):
    """
    Append-only message log keyed by sender, plus presence records.

    Every implementation raises StorageError on failure and assigns message
    timestamps itself; timestamps for one sender are strictly increasing in
    append order.
    """

    @abstractmethod
    def append(self, sender: str, body: str, direction: Direction) -> Message:
        raise NotImplementedError

    @abstractmethod
    def list_ordered(self, sender: str) -> list[Message]:
        """All messages for sender, oldest first. Unknown sender -> []."""
        raise NotImplementedError

    @abstractmethod
    def upsert_presence(self, sender: str) -> SenderPresence:
        """
        Create the presence record if absent (setting first_seen_at) and
        always move last_active_at to now.
        """
        raise NotImplementedError

    @abstractmethod
    def get_presence(self, sender: str) -> SenderPresence | None:
        raise NotImplementedError

    @abstractmethod
    def list_presence(self) -> list[SenderPresence]:
        """Presence records, most recently active first."""
        raise NotImplementedError

    @abstractmethod
    def list_thread_summaries(self) -> list[ThreadSummary]:
        """
        One summary per sender with at least one message, carrying that
        sender's latest message, most recently active sender first.
        """
        raise NotImplementedError

    @abstractmethod
    def remember_event(self, sender: str, event_id: str, window: int) -> bool:
        """
        Record a webhook event id for sender, keeping at most `window` ids.
        Returns False if the id was already recorded.
        """
        raise NotImplementedError

    @abstractmethod
    def forget_event(self, sender: str, event_id: str) -> None:
        """Drop a recorded event id so a redelivery of that event is relayed again."""
        raise NotImplementedError
