from dataclasses import dataclass
from enum import Enum


class TurnStage(str, Enum):
    RECEIVED = "received"
    PERSISTED_INBOUND = "persisted_inbound"
    CONTEXT_BUILT = "context_built"
    COMPLETED = "completed"
    DISPATCHED = "dispatched"
    PERSISTED_OUTBOUND = "persisted_outbound"


class TurnStatus(str, Enum):
    DONE = "done"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
    ABORTED_NO_REPLY = "aborted_no_reply"
    ABORTED_DELIVERY = "aborted_delivery"
    ABORTED_NO_PERSIST = "aborted_no_persist"


@dataclass(frozen=True)
class TurnOutcome:
    status: TurnStatus
    stage: TurnStage
    sender: str | None = None
    reply_text: str | None = None
    reason: str = ""
