#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no WhatsApp).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable sender id for the session
- Sends your typed messages through the same HandleIncomingMessageUseCase
- Replies are captured by a mock platform instead of being delivered
- Prints the turn outcome (status, stage reached) and the reply text
"""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from chatrelay.core.config import settings
from chatrelay.domain.entities.message import InboundMessage
from chatrelay.infrastructure.whatsapp.mock_platform import MockWhatsAppPlatform
from chatrelay.wiring.dependencies import build_container


def _print_header(sender: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"sender: {sender}")
    print("Type your message and press Enter.")
    print("Commands: /new (new sender), /history, /threads, /quit, /help")
    print("-" * 60)


def main() -> None:
    sender = os.getenv("CHAT_SENDER_ID", "910000000001")
    container = build_container(settings, platform=MockWhatsAppPlatform())
    use_case = container.handle_incoming_message
    views = container.thread_views
    _print_header(sender)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new  -> start a new sender (empty thread)")
            print("  /history -> show last 10 messages")
            print("  /threads -> show the operator summary")
            print("  /quit -> exit")
            continue
        if cmd == "/new":
            sender = f"91{int(time.time())}"
            print(f"New sender: {sender}")
            continue
        if cmd == "/history":
            print("\n--- History (last 10) ---")
            for m in views.transcript(sender)[-10:]:
                print(f"{m.timestamp.isoformat()} {m.direction.value}: {m.body}")
            continue
        if cmd == "/threads":
            print("\n--- Threads ---")
            for s in views.summaries():
                print(f"{s.last_message_at.isoformat()} {s.sender}: {s.last_message_body}")
            continue

        outcome = use_case.handle(
            InboundMessage(sender=sender, body=user_text, event_id=f"local.{int(time.time() * 1000)}")
        )

        print("\n--- Turn ---")
        print(f"status: {outcome.status.value}")
        print(f"stage: {outcome.stage.value}")
        if outcome.reason:
            print(f"reason: {outcome.reason}")

        print("\n--- Reply ---")
        print((outcome.reply_text or "").strip() or "(no reply)")
        print("-" * 60)


if __name__ == "__main__":
    main()
