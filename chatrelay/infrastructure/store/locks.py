from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from chatrelay.application.exceptions import StorageError


class SenderLocks:
    """One lock per sender, so writes to a thread are serialized in-process."""

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def _get_lock(self, sender: str) -> threading.Lock:
        with self._lock_lock:
            if sender not in self._locks:
                self._locks[sender] = threading.Lock()
            return self._locks[sender]

    @contextmanager
    def hold(self, sender: str) -> Iterator[None]:
        lock = self._get_lock(sender)
        if not lock.acquire(timeout=self._timeout):
            raise StorageError(f"Timed out waiting for thread lock of {sender}")
        try:
            yield
        finally:
            lock.release()
