"""Error types for usagetrack.

Malformed input (negative-duration unlocks, zero-delta scrolls) is dropped
silently by the engine. Everything here is a genuine fault that must fail
the whole date's run.
"""


class UsageTrackError(Exception):
    """Base exception for usagetrack errors."""

    pass


class UnknownEventKindError(UsageTrackError, ValueError):
    """Raised when a raw event carries a kind outside the closed enumeration."""

    def __init__(self, kind: object) -> None:
        """Initialize error.

        Args:
            kind: The unrecognized kind value.
        """
        super().__init__(f"Unknown event kind: {kind!r}")
        self.kind = kind


class ProcessingError(UsageTrackError):
    """Raised when reconstruction of a date fails.

    No partial result is ever returned alongside this error.
    """

    def __init__(self, date_string: str, message: str) -> None:
        """Initialize processing error.

        Args:
            date_string: The date whose run failed.
            message: Error description.
        """
        super().__init__(f"Processing failed for {date_string}: {message}")
        self.date_string = date_string


class StorageError(UsageTrackError):
    """Raised when the persistence layer cannot serve a request."""

    pass


class ConfigError(UsageTrackError):
    """Raised when configuration is missing or invalid."""

    pass


__all__ = [
    "ConfigError",
    "ProcessingError",
    "StorageError",
    "UnknownEventKindError",
    "UsageTrackError",
]
