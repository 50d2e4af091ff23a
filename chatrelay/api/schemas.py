from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class DirectionSchema(str, Enum):
    inbound = "inbound"
    outbound = "outbound"


class MessageSchema(BaseModel):
    sender: str
    body: str
    direction: DirectionSchema
    timestamp: datetime


class ThreadSummarySchema(BaseModel):
    sender: str
    last_message_body: str
    last_message_at: datetime


class ThreadSummaryListSchema(BaseModel):
    threads: list[ThreadSummarySchema] = Field(default_factory=list)


class TranscriptSchema(BaseModel):
    sender: str
    messages: list[MessageSchema] = Field(default_factory=list)


class SenderPresenceSchema(BaseModel):
    sender: str
    first_seen_at: datetime
    last_active_at: datetime


class SenderPresenceListSchema(BaseModel):
    senders: list[SenderPresenceSchema] = Field(default_factory=list)
