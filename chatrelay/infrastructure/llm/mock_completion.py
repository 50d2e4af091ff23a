from __future__ import annotations

from chatrelay.application.ports.completion import CompletionPort


class MockCompletion(CompletionPort):
    """Deterministic stand-in used when no completion API key is configured."""

    def complete(self, context: str) -> str:
        last_line = context.rsplit("\n", 1)[-1] if context else ""
        _, _, text = last_line.partition(": ")
        if not text:
            return "Hello! How can we help you today?"
        return f"Thanks for your message: {text!r}. Our team will follow up shortly."
