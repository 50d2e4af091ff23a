from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ThreadSummary:
    sender: str
    last_message_body: str
    last_message_at: datetime
