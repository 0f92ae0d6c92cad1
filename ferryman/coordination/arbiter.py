"""Cancellation decisions for newly admitted runs.

The arbiter is pure: it looks at the runs already in the new event's group
and returns which of them the new run supersedes. The protected-run rule is
applied here unconditionally. No policy setting lets an unprotected event
cancel a protected run, because canceling a merge-queue check evicts the
pull request from the queue.
"""

from __future__ import annotations

import dataclasses
import typing as typ

from ferryman.registry.models import RunState

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ferryman.events.models import TriggerEvent
    from ferryman.policy.models import ConcurrencyGroupKey, CoordinationPolicy
    from ferryman.registry.models import RunRecord


@dataclasses.dataclass(frozen=True, slots=True)
class Decision:
    """Arbiter verdict for one incoming event."""

    admit: bool
    to_cancel: tuple[RunRecord, ...] = ()


class CancellationArbiter:
    """Decide which runs a new event supersedes within its group."""

    def __init__(self, policy: CoordinationPolicy) -> None:
        """Bind the arbiter to a coordination policy."""
        self._policy = policy

    @property
    def policy(self) -> CoordinationPolicy:
        """Return the policy in force."""
        return self._policy

    def is_protected_event(self, event: TriggerEvent) -> bool:
        """Return True when ``event`` produces protected runs."""
        return event.is_protected or self._policy.is_protected(event.event_class)

    def is_protected_run(self, run: RunRecord) -> bool:
        """Return True when ``run`` is immune to unprotected supersession."""
        return self.is_protected_event(run.source_event)

    def _may_cancel(
        self, run: RunRecord, *, new_protected: bool, cancel_in_progress: bool
    ) -> bool:
        if run.state is RunState.QUEUED:
            by_state = True
        elif run.state is RunState.RUNNING:
            by_state = cancel_in_progress
        else:
            return False
        if not by_state:
            return False

        run_protected = self.is_protected_run(run)
        if run_protected and not new_protected:
            return False
        if new_protected and not run_protected:
            return self._policy.protected_may_cancel_unprotected
        return True

    def decide(
        self,
        new_event: TriggerEvent,
        group_key: ConcurrencyGroupKey,
        existing_runs: cabc.Iterable[RunRecord],
    ) -> Decision:
        """Return the admission verdict and the runs to cancel.

        Parameters
        ----------
        new_event
            Event about to be admitted.
        group_key
            Key resolved for ``new_event``. Runs from any other group are
            ignored, so a decision never reaches across groups.
        existing_runs
            Runs currently registered under ``group_key``.

        Returns
        -------
        Decision
            ``admit`` is always true; ``to_cancel`` lists superseded runs in
            coordinator admission order.

        """
        cancel_in_progress = self._policy.for_class(
            new_event.event_class
        ).cancel_in_progress
        new_protected = self.is_protected_event(new_event)
        to_cancel = tuple(
            sorted(
                (
                    run
                    for run in existing_runs
                    if run.group_key == group_key
                    and self._may_cancel(
                        run,
                        new_protected=new_protected,
                        cancel_in_progress=cancel_in_progress,
                    )
                ),
                key=lambda run: run.created_at,
            )
        )
        return Decision(admit=True, to_cancel=to_cancel)
