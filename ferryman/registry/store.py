"""Thread-safe, per-group store of run records.

Each concurrency group owns a slot with its own lock and a version counter
bumped on every mutation. Admission is a compare-and-swap against that
version, so a decision computed from a stale snapshot is refused with
:class:`RegistryContentionError` instead of being applied. Operations on
different groups never contend with each other.

Lock order: the slot table lock is never held while waiting on a slot lock.
A slot left empty when its lock is released is retired under both locks; a
caller that acquires a retired slot retries against the table.
"""

from __future__ import annotations

import contextlib
import dataclasses
import itertools
import threading
import typing as typ
import uuid

from .errors import InvalidTransitionError, RegistryContentionError, RunNotFoundError
from .models import (
    Admission,
    GroupSnapshot,
    RunRecord,
    RunState,
    TerminalReason,
    TransitionOutcome,
    TransitionResult,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from ferryman.events.models import TriggerEvent
    from ferryman.policy.models import ConcurrencyGroupKey


_ALLOWED: dict[RunState, frozenset[RunState]] = {
    RunState.QUEUED: frozenset(
        {RunState.RUNNING, RunState.CANCELED, RunState.COMPLETED, RunState.FAILED}
    ),
    RunState.RUNNING: frozenset(
        {RunState.RUNNING, RunState.CANCELED, RunState.COMPLETED, RunState.FAILED}
    ),
}


@dataclasses.dataclass(slots=True)
class _GroupSlot:
    key: ConcurrencyGroupKey
    lock: threading.Lock = dataclasses.field(default_factory=threading.Lock)
    version: int = 0
    runs: list[RunRecord] = dataclasses.field(default_factory=list)
    retired: bool = False

    def position(self, run_id: str) -> int:
        for index, run in enumerate(self.runs):
            if run.run_id == run_id:
                return index
        raise RunNotFoundError(run_id)

    def replace(self, index: int, record: RunRecord) -> RunRecord:
        self.runs[index] = record
        self.version += 1
        return record


class RunRegistry:
    """Mapping of concurrency-group key to the runs sharing it."""

    def __init__(self) -> None:
        """Create an empty registry."""
        self._table_lock = threading.Lock()
        self._slots: dict[ConcurrencyGroupKey, _GroupSlot] = {}
        self._index: dict[str, ConcurrencyGroupKey] = {}
        self._counter_lock = threading.Lock()
        self._counter = itertools.count(1)

    @contextlib.contextmanager
    def _locked_slot(self, key: ConcurrencyGroupKey) -> cabc.Iterator[_GroupSlot]:
        while True:
            with self._table_lock:
                slot = self._slots.get(key)
                if slot is None:
                    slot = _GroupSlot(key=key)
                    self._slots[key] = slot
            with slot.lock:
                if slot.retired:
                    continue
                try:
                    yield slot
                finally:
                    self._retire_if_empty_locked(slot)
                return

    def _key_for(self, run_id: str) -> ConcurrencyGroupKey:
        with self._table_lock:
            try:
                return self._index[run_id]
            except KeyError:
                raise RunNotFoundError(run_id) from None

    def _next_created_at(self) -> int:
        with self._counter_lock:
            return next(self._counter)

    def _append_locked(self, slot: _GroupSlot, record: RunRecord) -> None:
        slot.runs.append(record)
        slot.version += 1
        with self._table_lock:
            self._index[record.run_id] = slot.key

    def _retire_if_empty_locked(self, slot: _GroupSlot) -> None:
        if slot.runs:
            return
        with self._table_lock:
            if self._slots.get(slot.key) is slot:
                del self._slots[slot.key]
        slot.retired = True

    def snapshot(self, key: ConcurrencyGroupKey) -> GroupSnapshot:
        """Return a versioned copy of the runs in ``key``."""
        with self._table_lock:
            slot = self._slots.get(key)
        if slot is None:
            return GroupSnapshot(key=key, version=0)
        with slot.lock:
            if slot.retired:
                return GroupSnapshot(key=key, version=0)
            return GroupSnapshot(key=key, version=slot.version, runs=tuple(slot.runs))

    def list_active(self, key: ConcurrencyGroupKey) -> tuple[RunRecord, ...]:
        """Return the non-terminal runs of ``key`` in admission order."""
        return self.snapshot(key).active

    def append(self, key: ConcurrencyGroupKey, record: RunRecord) -> RunRecord:
        """Append an already-built record to ``key``."""
        with self._locked_slot(key) as slot:
            self._append_locked(slot, record)
        return record

    def admit(
        self,
        key: ConcurrencyGroupKey,
        expected_version: int,
        event: TriggerEvent,
        to_cancel: cabc.Sequence[RunRecord],
        *,
        now: dt.datetime,
    ) -> Admission:
        """Cancel ``to_cancel`` and append a run for ``event`` in one step.

        The new run's ``created_at`` is drawn from the coordinator counter
        inside the group lock, so admission order and counter order agree.

        Raises
        ------
        RegistryContentionError
            If the group changed since the snapshot at ``expected_version``.

        """
        with self._locked_slot(key) as slot:
            if slot.version != expected_version:
                raise RegistryContentionError(
                    key, expected=expected_version, actual=slot.version
                )
            canceled: list[RunRecord] = []
            for run in to_cancel:
                index = slot.position(run.run_id)
                current = slot.runs[index]
                if current.is_terminal:
                    continue
                canceled.append(
                    slot.replace(
                        index,
                        dataclasses.replace(
                            current,
                            state=RunState.CANCELED,
                            finished_at=now,
                            reason=TerminalReason.SUPERSEDED,
                        ),
                    )
                )
            record = RunRecord(
                run_id=str(uuid.uuid4()),
                group_key=key,
                source_event=event,
                state=RunState.QUEUED,
                created_at=self._next_created_at(),
            )
            self._append_locked(slot, record)
            return Admission(record=record, canceled=tuple(canceled))

    def transition(
        self,
        run_id: str,
        new_state: RunState,
        *,
        now: dt.datetime,
        reason: TerminalReason | None = None,
    ) -> TransitionResult:
        """Move ``run_id`` to ``new_state``.

        A run that is already terminal is left untouched and reported as
        ``ALREADY_TERMINAL``; duplicate completion callbacks are expected.

        Raises
        ------
        RunNotFoundError
            If the run is unknown or evicted.
        InvalidTransitionError
            If the lifecycle forbids the move (e.g. Running back to Queued,
            or Running for a held run that was never dispatched).

        """
        key = self._key_for(run_id)
        with self._locked_slot(key) as slot:
            index = slot.position(run_id)
            current = slot.runs[index]
            if current.is_terminal:
                return TransitionResult(TransitionOutcome.ALREADY_TERMINAL, current)
            if new_state not in _ALLOWED[current.state] or (
                new_state is RunState.RUNNING and current.is_held
            ):
                raise InvalidTransitionError(run_id, current.state, new_state)
            if new_state is current.state:
                return TransitionResult(TransitionOutcome.APPLIED, current)
            updated = dataclasses.replace(
                current,
                state=new_state,
                dispatched_at=current.dispatched_at or now,
                finished_at=now if new_state.is_terminal else None,
                reason=reason,
            )
            return TransitionResult(
                TransitionOutcome.APPLIED, slot.replace(index, updated)
            )

    def claim_next(
        self, key: ConcurrencyGroupKey, *, now: dt.datetime
    ) -> RunRecord | None:
        """Mark the oldest held run of ``key`` as dispatched.

        Returns ``None`` when the group already has a run occupying the
        executor or nothing is waiting.
        """
        with self._locked_slot(key) as slot:
            if any(run.is_occupying for run in slot.runs):
                return None
            held = [
                (index, run) for index, run in enumerate(slot.runs) if run.is_held
            ]
            if not held:
                return None
            index, run = min(held, key=lambda item: item[1].created_at)
            return slot.replace(index, dataclasses.replace(run, dispatched_at=now))

    def get(self, run_id: str) -> RunRecord:
        """Return the current record for ``run_id``."""
        key = self._key_for(run_id)
        with self._locked_slot(key) as slot:
            return slot.runs[slot.position(run_id)]

    def evict(self, run_id: str) -> RunRecord | None:
        """Drop ``run_id`` from the registry, returning the removed record.

        Only terminal runs are evicted; ``None`` is returned for an active or
        unknown run.
        """
        with self._table_lock:
            key = self._index.get(run_id)
        if key is None:
            return None
        with self._locked_slot(key) as slot:
            if not any(run.run_id == run_id for run in slot.runs):
                return None
            index = slot.position(run_id)
            record = slot.runs[index]
            if not record.is_terminal:
                return None
            del slot.runs[index]
            slot.version += 1
            with self._table_lock:
                self._index.pop(run_id, None)
            return record

    def keys(self) -> tuple[ConcurrencyGroupKey, ...]:
        """Return the keys of every group currently holding runs."""
        with self._table_lock:
            return tuple(self._slots)

    def iter_records(self) -> cabc.Iterator[RunRecord]:
        """Yield a point-in-time copy of every record, group by group."""
        for key in self.keys():
            yield from self.snapshot(key).runs

    def __len__(self) -> int:
        """Return the number of tracked runs."""
        with self._table_lock:
            return len(self._index)
