"""Interface to the external CI executor."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from ferryman.registry.models import RunRecord


class Executor(typ.Protocol):
    """Collaborator that runs and cancels CI executions.

    Both calls are fire-and-forget requests. Delivery is at-least-once and
    the executor must treat repeats as no-ops. Cancellation is advisory: it
    may race with the run finishing, and the executor reports the real
    outcome through the completion callback.
    """

    def start(self, run: RunRecord) -> None:
        """Request execution of ``run``."""
        ...

    def cancel(self, run: RunRecord) -> None:
        """Request cancellation of ``run``."""
        ...
