"""Errors raised while normalizing provider events."""

from __future__ import annotations


class UnrecognizedEventShapeError(ValueError):
    """Raised when a raw event cannot be mapped to a trigger event.

    The submission is rejected and never retried; the caller must fix the
    payload or the declared event class.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        """Record the offending field, when known."""
        self.field = field
        super().__init__(message)

    @classmethod
    def unknown_class(
        cls, event: str, action: str | None
    ) -> UnrecognizedEventShapeError:
        """Return an error for an unsupported event/activity combination."""
        declared = event if action is None else f"{event}.{action}"
        return cls(f"unsupported event class: {declared!r}")

    @classmethod
    def missing(cls, field: str, declared: str) -> UnrecognizedEventShapeError:
        """Return an error for a required field absent from the event."""
        return cls(
            f"{declared} event is missing required field {field!r}", field=field
        )

    @classmethod
    def invalid_payload(
        cls, declared: str, reason: str
    ) -> UnrecognizedEventShapeError:
        """Return an error for a payload that fails schema validation."""
        return cls(f"{declared} payload failed validation: {reason}")

    @classmethod
    def malformed(
        cls, field: str, declared: str, reason: str
    ) -> UnrecognizedEventShapeError:
        """Return an error for a field present with an unusable value."""
        return cls(
            f"{declared} event has malformed {field!r}: {reason}", field=field
        )
