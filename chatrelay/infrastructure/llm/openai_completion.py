from __future__ import annotations

import logging

from openai import OpenAI, OpenAIError

from chatrelay.application.exceptions import CompletionUnavailable
from chatrelay.application.ports.completion import CompletionPort


class OpenAICompletion(CompletionPort):
    """
    Chat-completions adapter for any OpenAI-compatible provider (Groq by default).

    Each call sends the fixed system instruction plus the transcript as a
    single user turn and returns the first choice's text.
    - Raises CompletionUnavailable for provider/network errors, timeouts and
      empty replies. The SDK's own retries are disabled.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        base_url: str | None = None,
        temperature: float = 0.2,
        max_tokens: int = 512,
        timeout: float = 20.0,
        client: OpenAI | None = None,
    ) -> None:
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self._model = model
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = logging.getLogger(__name__)

    def complete(self, context: str) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": self._system_prompt},
                    {"role": "user", "content": context},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except OpenAIError as e:
            raise CompletionUnavailable(f"Completion API error: {e}") from e

        try:
            content = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        except (AttributeError, IndexError, TypeError) as e:
            raise CompletionUnavailable(f"Malformed completion response: {e}") from e
        if not content:
            raise CompletionUnavailable("Completion returned empty response text.")

        self._logger.debug("Completion received", extra={"reason": f"{len(content)} chars"})
        return content
