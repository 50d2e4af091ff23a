from abc import ABC, abstractmethod


class CompletionPort(ABC):
    @abstractmethod
    def complete(self, context: str) -> str:
        """
        Return the provider's single best reply to `context`.

        Raises CompletionUnavailable on network failure, a non-success
        response, or an empty/malformed reply. Never retries.
        """
        raise NotImplementedError
