"""Errors specific to the run registry."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from ferryman.policy.models import ConcurrencyGroupKey

    from .models import RunState


class RegistryError(Exception):
    """Base class for run registry errors."""


class RunNotFoundError(RegistryError, LookupError):
    """Raised when a run id is unknown or already evicted."""

    def __init__(self, run_id: str) -> None:
        """Initialise with the missing run id."""
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


class RegistryContentionError(RegistryError):
    """Raised when a group changed between snapshot and admission.

    Transient: the scheduler re-reads the group and decides again.
    """

    def __init__(
        self, key: ConcurrencyGroupKey, *, expected: int, actual: int
    ) -> None:
        """Record the stale and current group versions."""
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Group {key} changed during admission "
            f"(expected version {expected}, found {actual})"
        )


class InvalidTransitionError(RegistryError, ValueError):
    """Raised for transitions the run lifecycle does not allow."""

    def __init__(self, run_id: str, current: RunState, requested: RunState) -> None:
        """Record the rejected transition."""
        self.run_id = run_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Run {run_id} cannot move from {current.value} to {requested.value}"
        )
