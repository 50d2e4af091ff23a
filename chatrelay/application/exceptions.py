class RelayError(RuntimeError):
    """Base class for failures that end a relay turn."""
    pass


class MalformedEvent(RelayError):
    """Raised when a webhook delivery body is not a readable WhatsApp event."""
    pass


class StorageError(RelayError):
    """Raised when the thread store cannot read or write (unavailable, timeout, corrupt data)."""
    pass


class CompletionUnavailable(RelayError):
    """Raised when the completion provider fails (network, non-success status, empty or malformed reply)."""
    pass


class DeliveryError(RelayError):
    """Raised when the delivery API rejects a reply or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
