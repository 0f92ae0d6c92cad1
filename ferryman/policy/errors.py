"""Errors raised by policy loading and group key resolution."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from ferryman.events.models import EventClass


class PolicyValidationError(ValueError):
    """Raised when a coordination policy is structurally invalid."""

    def __init__(self, issues: list[str]) -> None:
        """Keep every issue while exposing them as one message."""
        super().__init__("\n".join(issues))
        self.issues = issues


class UnresolvableDiscriminantError(LookupError):
    """Raised when the policy selects a field the event does not carry.

    This is a configuration error: the submission is rejected and surfaced to
    the operator rather than retried.
    """

    def __init__(self, message: str, *, event_class: EventClass) -> None:
        """Record the event class that failed to resolve."""
        self.event_class = event_class
        super().__init__(message)

    @classmethod
    def unconfigured(cls, event_class: EventClass) -> UnresolvableDiscriminantError:
        """Return an error for an event class absent from the policy."""
        return cls(
            f"policy has no entry for event class {event_class.value!r}",
            event_class=event_class,
        )

    @classmethod
    def absent(
        cls, event_class: EventClass, field: str
    ) -> UnresolvableDiscriminantError:
        """Return an error for a discriminant field missing on the event."""
        return cls(
            f"discriminant {field!r} is empty for event class {event_class.value!r}",
            event_class=event_class,
        )
