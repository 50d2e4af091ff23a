from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

from chatrelay.application.exceptions import StorageError
from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Direction, Message
from chatrelay.domain.entities.presence import SenderPresence
from chatrelay.domain.entities.thread_summary import ThreadSummary
from chatrelay.infrastructure.store.clock import MonotonicClock, as_utc
from chatrelay.infrastructure.store.locks import SenderLocks


class JsonThreadStore(ThreadStorePort):
    """One JSON document per sender under `data_dir`, rewritten atomically on every change."""

    def __init__(self, data_dir: str = "./data/threads", lock_timeout: float = 5.0) -> None:
        self._data_dir = Path(data_dir)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data dir {data_dir}: {e}") from e
        self._locks = SenderLocks(lock_timeout)
        self._clock = MonotonicClock()

    def _get_file_path(self, sender: str) -> Path:
        return self._data_dir / f"{quote(sender, safe='+')}.json"

    def _load_thread_data(self, sender: str) -> dict[str, Any]:
        """Load thread data from JSON file, return an empty thread if missing."""
        return self._read_file(self._get_file_path(sender)) or _empty_thread(sender)

    def _read_file(self, file_path: Path) -> dict[str, Any] | None:
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise StorageError(f"Cannot read thread file {file_path.name}: {e}") from e
        if not isinstance(data, dict) or "sender" not in data:
            raise StorageError(f"Thread file {file_path.name} has an unexpected shape")
        data.setdefault("messages", [])
        data.setdefault("presence", None)
        data.setdefault("events", [])
        return data

    def _save_thread_data(self, sender: str, data: dict[str, Any]) -> None:
        """Save thread data to JSON file atomically."""
        file_path = self._get_file_path(sender)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass
            raise StorageError(f"Cannot write thread file {file_path.name}: {e}") from e

    def append(self, sender: str, body: str, direction: Direction) -> Message:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
            last = _deserialize_message(sender, data["messages"][-1]) if data["messages"] else None
            previous = last.timestamp if last else None
            message = Message(
                sender=sender,
                body=body,
                direction=Direction(direction),
                timestamp=self._clock.now(previous),
            )
            data["messages"].append(_serialize_message(message))
            self._save_thread_data(sender, data)
            return message

    def list_ordered(self, sender: str) -> list[Message]:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
        return [_deserialize_message(sender, m) for m in data["messages"]]

    def upsert_presence(self, sender: str) -> SenderPresence:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
            existing = _deserialize_presence(sender, data["presence"])
            now = self._clock.now(existing.last_active_at if existing else None)
            presence = SenderPresence(
                sender=sender,
                first_seen_at=existing.first_seen_at if existing else now,
                last_active_at=now,
            )
            data["presence"] = {
                "first_seen_at": presence.first_seen_at.isoformat(),
                "last_active_at": presence.last_active_at.isoformat(),
            }
            self._save_thread_data(sender, data)
            return presence

    def get_presence(self, sender: str) -> SenderPresence | None:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
        return _deserialize_presence(sender, data["presence"])

    def list_presence(self) -> list[SenderPresence]:
        records = []
        for data in self._scan():
            presence = _deserialize_presence(data["sender"], data["presence"])
            if presence is not None:
                records.append(presence)
        return sorted(records, key=lambda p: p.last_active_at, reverse=True)

    def list_thread_summaries(self) -> list[ThreadSummary]:
        summaries = []
        for data in self._scan():
            if not data["messages"]:
                continue
            last = _deserialize_message(data["sender"], data["messages"][-1])
            summaries.append(
                ThreadSummary(
                    sender=last.sender,
                    last_message_body=last.body,
                    last_message_at=last.timestamp,
                )
            )
        return sorted(summaries, key=lambda s: s.last_message_at, reverse=True)

    def remember_event(self, sender: str, event_id: str, window: int) -> bool:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
            if event_id in data["events"]:
                return False
            data["events"] = (data["events"] + [event_id])[-max(1, window):]
            self._save_thread_data(sender, data)
            return True

    def forget_event(self, sender: str, event_id: str) -> None:
        with self._locks.hold(sender):
            data = self._load_thread_data(sender)
            if event_id not in data["events"]:
                return
            data["events"] = [e for e in data["events"] if e != event_id]
            self._save_thread_data(sender, data)

    def _scan(self) -> list[dict[str, Any]]:
        threads = []
        try:
            paths = sorted(self._data_dir.glob("*.json"))
        except OSError as e:
            raise StorageError(f"Cannot list data dir: {e}") from e
        for path in paths:
            data = self._read_file(path)
            if data is not None:
                threads.append(data)
        return threads


def _empty_thread(sender: str) -> dict[str, Any]:
    return {
        "sender": sender,
        "messages": [],
        "presence": None,
        "events": [],
        "version": 1,
    }


def _serialize_message(message: Message) -> dict[str, Any]:
    return {
        "body": message.body,
        "direction": message.direction.value,
        "timestamp": message.timestamp.isoformat(),
    }


def _deserialize_message(sender: str, data: dict[str, Any]) -> Message:
    try:
        return Message(
            sender=sender,
            body=str(data["body"]),
            direction=Direction(data["direction"]),
            timestamp=_parse_ts(data["timestamp"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Corrupt message record for {sender}: {e}") from e


def _deserialize_presence(sender: str, data: dict[str, Any] | None) -> SenderPresence | None:
    if not data:
        return None
    try:
        return SenderPresence(
            sender=sender,
            first_seen_at=_parse_ts(data["first_seen_at"]),
            last_active_at=_parse_ts(data["last_active_at"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Corrupt presence record for {sender}: {e}") from e


def _parse_ts(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value))
