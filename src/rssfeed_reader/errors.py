"""Error types raised by the fetch/parse pipeline."""


class FeedError(Exception):
    """Base class for anything that can go wrong while loading a feed."""


class ValidationError(FeedError):
    """Raised when a feed URL is not usable. Never retried automatically."""


class TransportError(FeedError):
    """Raised when the server answers with a non-success status code."""

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"Could not reach URL: HTTP {status_code}")


class NetworkError(FeedError):
    """Raised on DNS, timeout or connection failures."""


class FormatError(FeedError):
    """Raised when a document has neither a channel nor a feed root."""
