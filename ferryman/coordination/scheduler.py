"""Admission and dispatch of CI runs.

The scheduler is the single owner of the run registry. One submission
flows as: assign an ingestion sequence number, normalize, resolve the
group key, let the arbiter decide against a versioned snapshot, then commit
admission and cancellation atomically. A commit against a stale snapshot is
refused by the registry and the decision is recomputed from fresh state.

At most one run per group occupies the executor (dispatched or Running).
Later runs are held as Queued until the occupant finishes, is canceled or
times out, which keeps two runs of one group from running side by side.

Executor calls for one group are issued under that group's dispatch gate, so
the executor sees start and cancel requests in the order the registry applied
them: a run is never started after its cancellation was sent.
"""

from __future__ import annotations

import contextlib
import dataclasses
import itertools
import threading
import typing as typ

from ferryman.common.time import utcnow
from ferryman.events.errors import UnrecognizedEventShapeError
from ferryman.events.normalizer import normalize
from ferryman.policy.errors import UnresolvableDiscriminantError
from ferryman.policy.resolver import resolve
from ferryman.registry.errors import RegistryContentionError
from ferryman.registry.models import RunState, TerminalReason, TransitionOutcome
from ferryman.registry.store import RunRegistry

from .arbiter import CancellationArbiter
from .config import SchedulerConfig
from .errors import DispatchTimeoutError
from .observability import CoordinationEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from ferryman.common.time import Clock
    from ferryman.events.models import RawEvent, TriggerEvent
    from ferryman.executor.protocol import Executor
    from ferryman.policy.models import ConcurrencyGroupKey, CoordinationPolicy
    from ferryman.registry.models import Admission, RunRecord, TransitionResult


_OUTCOME_STATES: dict[str, RunState] = {
    "completed": RunState.COMPLETED,
    "failed": RunState.FAILED,
}


@dataclasses.dataclass(frozen=True, slots=True)
class SweepResult:
    """Summary of one maintenance sweep."""

    timed_out: tuple[RunRecord, ...] = ()
    started: tuple[RunRecord, ...] = ()
    evicted: tuple[RunRecord, ...] = ()


@dataclasses.dataclass(slots=True)
class _DispatchGate:
    lock: threading.Lock = dataclasses.field(default_factory=threading.Lock)
    users: int = 0


class Scheduler:
    """Admit trigger events as runs and drive the external executor."""

    def __init__(
        self,
        policy: CoordinationPolicy,
        executor: Executor,
        *,
        registry: RunRegistry | None = None,
        config: SchedulerConfig | None = None,
        clock: Clock = utcnow,
        event_logger: CoordinationEventLogger | None = None,
    ) -> None:
        """Create a scheduler bound to a policy and an executor."""
        self._policy = policy
        self._arbiter = CancellationArbiter(policy)
        self._executor = executor
        self._registry = RunRegistry() if registry is None else registry
        self._config = config or SchedulerConfig()
        self._clock = clock
        self._event_logger = event_logger or CoordinationEventLogger()
        self._observed_lock = threading.Lock()
        self._observed = itertools.count(1)
        self._gates_lock = threading.Lock()
        self._gates: dict[ConcurrencyGroupKey, _DispatchGate] = {}

    @property
    def policy(self) -> CoordinationPolicy:
        """Return the policy in force."""
        return self._policy

    @property
    def registry(self) -> RunRegistry:
        """Return the registry owned by this scheduler."""
        return self._registry

    def _next_observed_at(self) -> int:
        with self._observed_lock:
            return next(self._observed)

    @contextlib.contextmanager
    def _dispatching(self, key: ConcurrencyGroupKey) -> cabc.Iterator[None]:
        # Gates live only while a caller holds or awaits them.
        with self._gates_lock:
            gate = self._gates.get(key)
            if gate is None:
                gate = self._gates[key] = _DispatchGate()
            gate.users += 1
        try:
            with gate.lock:
                yield
        finally:
            with self._gates_lock:
                gate.users -= 1
                if gate.users == 0:
                    del self._gates[key]

    def submit(self, raw: RawEvent) -> RunRecord:
        """Admit ``raw`` as a new run and emit the resulting decisions.

        Returns
        -------
        RunRecord
            The admitted run as recorded at admission (always Queued; it may
            already have been handed to the executor by the time this
            returns).

        Raises
        ------
        UnrecognizedEventShapeError
            If ``raw`` cannot be normalized.
        UnresolvableDiscriminantError
            If the policy cannot derive a group key for the event.
        DispatchTimeoutError
            If the target group stayed contended for every admission attempt.

        """
        try:
            event = normalize(raw, observed_at=self._next_observed_at())
            key = resolve(event, self._policy)
        except (UnrecognizedEventShapeError, UnresolvableDiscriminantError) as exc:
            self._event_logger.submission_rejected(raw, exc)
            raise

        with self._dispatching(key):
            try:
                admission = self._admit(event, key)
            except DispatchTimeoutError as exc:
                self._event_logger.submission_rejected(raw, exc)
                raise

            self._event_logger.run_admitted(
                admission.record, len(admission.canceled)
            )
            for run in admission.canceled:
                self._event_logger.run_canceled(run, admission.record)
                self._executor.cancel(run)
            self._dispatch_next(key)
        return admission.record

    def _admit(self, event: TriggerEvent, key: ConcurrencyGroupKey) -> Admission:
        attempts = self._config.max_admission_attempts
        for attempt in range(1, attempts + 1):
            snapshot = self._registry.snapshot(key)
            decision = self._arbiter.decide(event, key, snapshot.active)
            try:
                return self._registry.admit(
                    key,
                    snapshot.version,
                    event,
                    decision.to_cancel,
                    now=self._clock(),
                )
            except RegistryContentionError:
                self._event_logger.admission_contended(key, attempt)
        raise DispatchTimeoutError.contention(key, attempts)

    def _dispatch_next(self, key: ConcurrencyGroupKey) -> RunRecord | None:
        # Callers hold the dispatch gate for ``key``.
        run = self._registry.claim_next(key, now=self._clock())
        if run is None:
            return None
        # A completion callback is not gated and may land after the claim.
        current = self._registry.get(run.run_id)
        if current.is_terminal:
            self._event_logger.start_suppressed(current)
            return None
        self._event_logger.run_started(run)
        self._executor.start(run)
        return run

    def acknowledge(self, run_id: str) -> TransitionResult:
        """Record that the executor picked up ``run_id`` (Queued to Running).

        A run canceled or timed out in the meantime reports
        ``ALREADY_TERMINAL``; the executor has already been asked to cancel
        it or will see its completion ignored.
        """
        key = self._registry.get(run_id).group_key
        with self._dispatching(key):
            return self._registry.transition(
                run_id, RunState.RUNNING, now=self._clock()
            )

    def _is_overdue(self, run: RunRecord, now: dt.datetime) -> bool:
        return (
            run.state is RunState.QUEUED
            and run.dispatched_at is not None
            and now - run.dispatched_at > self._config.dispatch_timeout
        )

    def complete(self, run_id: str, outcome: str | RunState) -> TransitionResult:
        """Apply the executor's completion callback for ``run_id``.

        Parameters
        ----------
        run_id
            Run the executor finished.
        outcome
            ``completed`` or ``failed`` (or the matching :class:`RunState`).

        Returns
        -------
        TransitionResult
            ``APPLIED`` the first time, ``ALREADY_TERMINAL`` for duplicate
            callbacks or runs canceled before they finished.

        Raises
        ------
        ValueError
            If ``outcome`` is not a completion outcome.
        RunNotFoundError
            If the run is unknown or already evicted.

        """
        state = _OUTCOME_STATES.get(str(outcome))
        if state is None:
            msg = f"outcome must be 'completed' or 'failed', got {outcome!r}"
            raise ValueError(msg)
        reason = (
            TerminalReason.COMPLETED
            if state is RunState.COMPLETED
            else TerminalReason.FAILED
        )
        result = self._registry.transition(
            run_id, state, now=self._clock(), reason=reason
        )
        if result.outcome is TransitionOutcome.APPLIED:
            self._event_logger.run_finished(result.record)
            key = result.record.group_key
            with self._dispatching(key):
                self._dispatch_next(key)
        return result

    def get(self, run_id: str) -> RunRecord:
        """Return the current record for ``run_id``."""
        return self._registry.get(run_id)

    def active_runs(self, key: ConcurrencyGroupKey) -> tuple[RunRecord, ...]:
        """Return the non-terminal runs of ``key``."""
        return self._registry.list_active(key)

    def sweep(self, now: dt.datetime | None = None) -> SweepResult:
        """Time out unacknowledged runs, start held ones and evict old ones.

        Runs dispatched longer than ``dispatch_timeout`` ago without an
        acknowledgment are failed with ``dispatch_timeout`` and are not
        retried. Terminal runs older than ``terminal_grace`` are removed.
        ``now`` defaults to the scheduler clock.
        """
        now = self._clock() if now is None else now
        timed_out: list[RunRecord] = []
        started: list[RunRecord] = []
        evicted: list[RunRecord] = []

        for run in list(self._registry.iter_records()):
            if not self._is_overdue(run, now):
                continue
            with self._dispatching(run.group_key):
                # Re-read under the gate; an acknowledgment may have landed.
                current = self._registry.get(run.run_id)
                if not self._is_overdue(current, now):
                    continue
                result = self._registry.transition(
                    run.run_id,
                    RunState.FAILED,
                    now=now,
                    reason=TerminalReason.DISPATCH_TIMEOUT,
                )
            if result.applied:
                self._event_logger.run_timed_out(result.record)
                timed_out.append(result.record)

        for key in self._registry.keys():
            with self._dispatching(key):
                dispatched = self._dispatch_next(key)
            if dispatched is not None:
                started.append(dispatched)

        for run in list(self._registry.iter_records()):
            if (
                run.finished_at is not None
                and now - run.finished_at >= self._config.terminal_grace
            ):
                removed = self._registry.evict(run.run_id)
                if removed is not None:
                    self._event_logger.run_evicted(removed)
                    evicted.append(removed)

        return SweepResult(
            timed_out=tuple(timed_out),
            started=tuple(started),
            evicted=tuple(evicted),
        )
