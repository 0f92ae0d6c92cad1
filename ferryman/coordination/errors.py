"""Errors surfaced by the scheduler."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from ferryman.policy.models import ConcurrencyGroupKey


class DispatchTimeoutError(RuntimeError):
    """Raised when a submission cannot be admitted in time.

    Executor timeouts never raise this; they surface as ``Failed`` runs with
    reason ``dispatch_timeout``. The exception only reaches ``submit``
    callers when admission retries against a contended group are exhausted.
    """

    def __init__(self, message: str, *, key: ConcurrencyGroupKey) -> None:
        """Record the contended group."""
        self.key = key
        super().__init__(message)

    @classmethod
    def contention(
        cls, key: ConcurrencyGroupKey, attempts: int
    ) -> DispatchTimeoutError:
        """Return an error for exhausted admission retries."""
        return cls(
            f"could not admit run into group {key} after {attempts} attempts",
            key=key,
        )
