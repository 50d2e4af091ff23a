from __future__ import annotations

import logging

from chatrelay.application.ports.thread_store import ThreadStorePort
from chatrelay.domain.entities.message import Direction, Message


DIRECTION_LABELS = {
    Direction.INBOUND: "user",
    Direction.OUTBOUND: "bot",
}


class BuildContextUseCase:
    """
    Render a sender's thread as a "<label>: <body>" transcript, oldest first.

    The transcript is a sliding window: when it would exceed `max_chars`
    (or `max_messages`, if set) the oldest lines are dropped first. The
    newest line is always kept; if it alone exceeds `max_chars` its label
    stays and the start of its body is cut, so the most recent text survives.
    """

    def __init__(self, store: ThreadStorePort, max_chars: int, max_messages: int = 0) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        self._store = store
        self._max_chars = max_chars
        self._max_messages = max(0, max_messages)
        self._logger = logging.getLogger(__name__)

    def execute(self, sender: str) -> str:
        history = self._store.list_ordered(sender)
        lines = [format_line(m) for m in history]
        window = fit_window(lines, self._max_chars, self._max_messages)
        if len(window) < len(lines):
            self._logger.info(
                "Context truncated",
                extra={"sender": sender, "reason": f"kept {len(window)} of {len(lines)} lines"},
            )
        return "\n".join(window)


def format_line(message: Message) -> str:
    return f"{DIRECTION_LABELS[message.direction]}: {message.body}"


def fit_window(lines: list[str], max_chars: int, max_messages: int = 0) -> list[str]:
    if not lines:
        return []
    if max_messages:
        lines = lines[-max_messages:]

    kept: list[str] = []
    total = 0
    for line in reversed(lines):
        cost = len(line) + (1 if kept else 0)
        if total + cost > max_chars:
            break
        kept.append(line)
        total += cost

    if not kept:
        return [clip_line(lines[-1], max_chars)]
    kept.reverse()
    return kept


def clip_line(line: str, max_chars: int) -> str:
    if len(line) <= max_chars:
        return line
    label, sep, body = line.partition(": ")
    prefix = label + sep
    if not sep or len(prefix) >= max_chars:
        return line[-max_chars:]
    return prefix + body[-(max_chars - len(prefix)):]
