from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


@dataclass(frozen=True)
class Message:
    sender: str
    body: str
    direction: Direction
    timestamp: datetime


@dataclass(frozen=True)
class InboundMessage:
    """A text message lifted out of a webhook delivery, not yet persisted."""

    sender: str
    body: str
    event_id: str | None = None
