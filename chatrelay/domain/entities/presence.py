from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SenderPresence:
    sender: str
    first_seen_at: datetime
    last_active_at: datetime
