"""Writer that persists evicted run records."""

from __future__ import annotations

import typing as typ

from sqlalchemy import select

from ferryman.audit.storage import Base, RunAudit
from ferryman.registry.codec import decode_run, encode_run

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ferryman.registry.models import RunRecord


def _to_row(run: RunRecord) -> RunAudit:
    event = run.source_event
    return RunAudit(
        run_id=run.run_id,
        group_key=str(run.group_key),
        event_class=str(event.event_class),
        commit_sha=event.commit_sha,
        state=str(run.state),
        reason=None if run.reason is None else str(run.reason),
        created_at=run.created_at,
        observed_at=event.observed_at,
        dispatched_at=run.dispatched_at,
        finished_at=run.finished_at,
        record=encode_run(run),
    )


class RunAuditWriter:
    """Append-only writer for the ``run_audit`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for audit writes."""
        self._session_factory = session_factory

    async def ensure_storage(self) -> None:
        """Create the audit table through the writer's own connection."""
        async with self._session_factory() as session:
            connection = await session.connection()
            await connection.run_sync(Base.metadata.create_all)
            await session.commit()

    async def record(self, runs: cabc.Iterable[RunRecord]) -> int:
        """Persist ``runs``, skipping run ids already audited.

        Returns the number of rows written.
        """
        pending = {run.run_id: run for run in runs}
        if not pending:
            return 0

        async with self._session_factory() as session:
            existing = set(
                await session.scalars(
                    select(RunAudit.run_id).where(RunAudit.run_id.in_(pending))
                )
            )
            rows = [_to_row(run) for rid, run in pending.items() if rid not in existing]
            session.add_all(rows)
            await session.commit()
            return len(rows)

    async def fetch(self, run_id: str) -> RunRecord | None:
        """Return the audited record for ``run_id``, if any."""
        async with self._session_factory() as session:
            row = await session.get(RunAudit, run_id)
            return None if row is None else decode_run(row.record)

    async def history(self, group_key: str) -> list[RunRecord]:
        """Return audited runs of one group in admission order."""
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(RunAudit)
                .where(RunAudit.group_key == group_key)
                .order_by(RunAudit.created_at)
            )
            return [decode_run(row.record) for row in rows]
