"""Run records and the value objects returned by the run registry."""

from __future__ import annotations

import dataclasses
import datetime as dt  # noqa: TC003 - resolved at runtime by msgspec
import enum
import typing as typ

from ferryman.events.models import TriggerEvent  # noqa: TC001
from ferryman.policy.models import ConcurrencyGroupKey  # noqa: TC001


class RunState(enum.StrEnum):
    """Lifecycle states of a scheduled run."""

    QUEUED = "queued"
    RUNNING = "running"
    CANCELED = "canceled"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True once no further transition is possible."""
        return self in TERMINAL_STATES


TERMINAL_STATES: typ.Final[frozenset[RunState]] = frozenset(
    {RunState.CANCELED, RunState.COMPLETED, RunState.FAILED}
)


class TerminalReason(enum.StrEnum):
    """Why a run reached a terminal state."""

    SUPERSEDED = "superseded"
    DISPATCH_TIMEOUT = "dispatch_timeout"
    COMPLETED = "completed"
    FAILED = "failed"


class TransitionOutcome(enum.StrEnum):
    """Result of a state transition request."""

    APPLIED = "applied"
    ALREADY_TERMINAL = "already_terminal"


@dataclasses.dataclass(frozen=True, slots=True)
class RunRecord:
    """One scheduled execution attempt.

    Records are immutable; the registry swaps in a replacement on every
    transition. ``created_at`` is the coordinator's admission counter and is
    the only ordering used for tie-breaks.
    """

    run_id: str
    group_key: ConcurrencyGroupKey
    source_event: TriggerEvent
    state: RunState
    created_at: int
    dispatched_at: dt.datetime | None = None
    finished_at: dt.datetime | None = None
    reason: TerminalReason | None = None

    @property
    def is_terminal(self) -> bool:
        """Return True when the run can no longer change state."""
        return self.state.is_terminal

    @property
    def is_occupying(self) -> bool:
        """Return True while the run holds its group's executor slot."""
        return self.state is RunState.RUNNING or (
            self.state is RunState.QUEUED and self.dispatched_at is not None
        )

    @property
    def is_held(self) -> bool:
        """Return True for a queued run not yet handed to the executor."""
        return self.state is RunState.QUEUED and self.dispatched_at is None


@dataclasses.dataclass(frozen=True, slots=True)
class GroupSnapshot:
    """Versioned, point-in-time view of one group's runs."""

    key: ConcurrencyGroupKey
    version: int
    runs: tuple[RunRecord, ...] = ()

    @property
    def active(self) -> tuple[RunRecord, ...]:
        """Return non-terminal runs in admission order."""
        return tuple(run for run in self.runs if not run.is_terminal)


@dataclasses.dataclass(frozen=True, slots=True)
class Admission:
    """Outcome of an atomic admit-and-cancel step."""

    record: RunRecord
    canceled: tuple[RunRecord, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class TransitionResult:
    """Outcome of a transition together with the current record."""

    outcome: TransitionOutcome
    record: RunRecord

    @property
    def applied(self) -> bool:
        """Return True when the transition changed the record."""
        return self.outcome is TransitionOutcome.APPLIED
