"""Lifespan middleware driving the scheduler's maintenance sweep.

On ASGI startup a background task calls :meth:`Scheduler.sweep` every
``interval`` and, when an audit writer is configured, persists the runs the
sweep evicted. Evicted runs whose audit write fails stay pending and are
written together with the next sweep's batch. The task is canceled on
shutdown after a final attempt to write what is still pending.

Usage
-----
Register the middleware when creating the Falcon app::

    sweeper = SweepMiddleware(scheduler, interval=config.sweep_interval)
    app = falcon.asgi.App(middleware=[sweeper])

"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from ferryman.logging import get_logger, log_debug, log_error

if typ.TYPE_CHECKING:
    import datetime as dt

    from ferryman.audit.writer import RunAuditWriter
    from ferryman.coordination.scheduler import Scheduler, SweepResult
    from ferryman.registry.models import RunRecord

__all__ = ["SweepMiddleware"]

logger = get_logger(__name__)


class SweepMiddleware:
    """Falcon lifespan middleware running the periodic sweep."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        interval: dt.timedelta,
        audit_writer: RunAuditWriter | None = None,
    ) -> None:
        """Sweep ``scheduler`` every ``interval``."""
        self._scheduler = scheduler
        self._interval = interval.total_seconds()
        self._audit_writer = audit_writer
        self._pending: list[RunRecord] = []
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> tuple[RunRecord, ...]:
        """Return evicted runs not yet written to the audit store."""
        return tuple(self._pending)

    async def sweep_once(self) -> SweepResult:
        """Run one sweep and audit the runs it evicted.

        Raises
        ------
        SQLAlchemyError
            If the audit write fails. The evicted runs are kept in
            :attr:`pending` and retried by the next call.

        """
        # Sweeping may start held runs, which publishes to the executor.
        result = await asyncio.to_thread(self._scheduler.sweep)
        if self._audit_writer is not None:
            self._pending.extend(result.evicted)
            await self.flush()
        return result

    async def flush(self) -> int:
        """Write pending evicted runs to the audit store."""
        if self._audit_writer is None or not self._pending:
            return 0
        batch = tuple(self._pending)
        written = await self._audit_writer.record(batch)
        del self._pending[: len(batch)]
        log_debug(logger, "Audited %d evicted runs", written)
        return written

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_once()
            except SQLAlchemyError:
                log_error(
                    logger,
                    "Failed to persist swept runs; %d pending until the next sweep",
                    len(self._pending),
                    exc_info=True,
                )
            except Exception:  # noqa: BLE001 - the sweeper outlives one bad pass
                log_error(logger, "Sweep failed", exc_info=True)

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Prepare audit storage and start the background sweep task."""
        if self._audit_writer is not None:
            await self._audit_writer.ensure_storage()
        self._task = asyncio.create_task(self._run())

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Cancel the background sweep task and write pending runs."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        try:
            await self.flush()
        except SQLAlchemyError:
            log_error(
                logger,
                "Dropping %d swept runs that could not be audited",
                len(self._pending),
                exc_info=True,
            )
