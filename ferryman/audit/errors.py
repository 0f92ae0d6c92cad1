"""Audit persistence error types."""

from __future__ import annotations


class TimezoneAwareRequiredError(ValueError):
    """Raised when a timestamp bound for the audit store lacks tzinfo."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")

    @classmethod
    def for_column(cls) -> TimezoneAwareRequiredError:
        """Return an error for a naive audit timestamp column value."""
        return cls("audit timestamp")
