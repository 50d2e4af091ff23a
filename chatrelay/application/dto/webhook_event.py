from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from chatrelay.application.exceptions import MalformedEvent
from chatrelay.domain.entities.message import InboundMessage


class WebhookEventDTO(BaseModel):
    object: str | None = None
    entry: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_body(cls, body: bytes) -> WebhookEventDTO:
        """Parse a raw delivery body. An empty body is an empty delivery."""
        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
            return cls.model_validate(payload)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            raise MalformedEvent(f"Unreadable webhook body: {e}") from e

    def extract_messages(self) -> list[InboundMessage]:
        messages: list[InboundMessage] = []
        for entry in self.entry or []:
            if not isinstance(entry, dict):
                continue
            for change in entry.get("changes", []) or []:
                if not isinstance(change, dict):
                    continue
                value = change.get("value") or {}
                if not isinstance(value, dict):
                    continue
                for msg in value.get("messages", []) or []:
                    if not isinstance(msg, dict):
                        continue
                    sender = msg.get("from")
                    text = msg.get("text") or {}
                    body = text.get("body") if isinstance(text, dict) else None
                    event_id = msg.get("id")

                    # Status callbacks, media and reactions carry no text body.
                    if not (sender and isinstance(body, str) and body.strip()):
                        continue

                    messages.append(
                        InboundMessage(
                            sender=str(sender),
                            body=body,
                            event_id=str(event_id) if event_id else None,
                        )
                    )

        return messages
