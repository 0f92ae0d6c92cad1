"""Executor adapter that hands start/cancel requests to Dramatiq.

Messages are enqueued by actor name, so the CI runner consuming the queue
owns the actors; ferryman only produces. A message carries the encoded run
record as its single argument.
"""

from __future__ import annotations

import typing as typ

import dramatiq
from dramatiq.errors import DramatiqError

from ferryman.logging import get_logger, log_error
from ferryman.registry.codec import encode_run

from ._broker import ensure_broker

if typ.TYPE_CHECKING:
    from ferryman.registry.models import RunRecord

logger = get_logger(__name__)

DEFAULT_QUEUE_NAME = "ferryman-runs"
START_ACTOR_NAME = "start_run"
CANCEL_ACTOR_NAME = "cancel_run"


class DramatiqExecutor:
    """Publish run start and cancel requests onto a Dramatiq queue.

    Publishing failures are logged rather than raised. The scheduler has
    already recorded the decision, and a run whose start never reaches the
    runner is failed by the dispatch-timeout sweep.
    """

    def __init__(
        self,
        broker: dramatiq.Broker | None = None,
        *,
        queue_name: str = DEFAULT_QUEUE_NAME,
    ) -> None:
        """Bind to ``broker`` (default: the global one) and declare the queue."""
        self._broker = broker or ensure_broker()
        self._queue_name = queue_name
        self._broker.declare_queue(queue_name)

    @property
    def queue_name(self) -> str:
        """Return the queue messages are published to."""
        return self._queue_name

    def _publish(self, actor_name: str, run: RunRecord) -> None:
        message = dramatiq.Message(
            queue_name=self._queue_name,
            actor_name=actor_name,
            args=(encode_run(run),),
            kwargs={},
            options={},
        )
        try:
            self._broker.enqueue(message)
        except DramatiqError as exc:
            log_error(
                logger,
                "Failed to publish %s for run %s on queue %s",
                actor_name,
                run.run_id,
                self._queue_name,
                exc_info=exc,
            )

    def start(self, run: RunRecord) -> None:
        """Publish a start request for ``run``."""
        self._publish(START_ACTOR_NAME, run)

    def cancel(self, run: RunRecord) -> None:
        """Publish a cancel request for ``run``."""
        self._publish(CANCEL_ACTOR_NAME, run)
