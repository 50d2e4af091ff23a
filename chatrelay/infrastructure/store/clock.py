from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone


TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class MonotonicClock:
    """
    Issues UTC timestamps that never repeat or go backwards within one store,
    and that are strictly after any `previous` value passed in (the last
    timestamp already persisted for a sender, possibly by another process).
    """

    def __init__(self) -> None:
        self._last: datetime | None = None
        self._lock = threading.Lock()

    def now(self, previous: datetime | None = None) -> datetime:
        with self._lock:
            issued = utcnow()
            for floor in (self._last, previous):
                if floor is not None and issued <= floor:
                    issued = floor + TICK
            self._last = issued
            return issued
