"""Inbound trigger event resource.

``POST /events`` accepts a JSON :class:`~ferryman.events.models.RawEvent`
envelope, admits it through the scheduler and answers ``202 Accepted`` with
the admitted run. Starting and canceling runs happen asynchronously through
the executor, so the response only confirms admission.
"""

from __future__ import annotations

import asyncio
import typing as typ

import falcon
import msgspec

from ferryman.api.errors import InvalidInputError
from ferryman.events.models import RawEvent
from ferryman.registry.codec import encode_run

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ferryman.coordination.scheduler import Scheduler

__all__ = ["EventsResource"]


class EventsResource:
    """Resource admitting trigger events."""

    def __init__(self, scheduler: Scheduler) -> None:
        """Configure the resource with the scheduler owning the registry."""
        self._scheduler = scheduler

    async def on_post(self, req: Request, resp: Response) -> None:
        """Decode the envelope and submit it.

        Raises
        ------
        InvalidInputError
            If the body is not a valid event envelope.

        """
        body = await req.stream.read()
        try:
            raw = msgspec.json.decode(body, type=RawEvent)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc), field="body") from exc

        # Executor publishing may block on broker I/O.
        run = await asyncio.to_thread(self._scheduler.submit, raw)
        resp.media = encode_run(run)
        resp.status = falcon.HTTP_202
