"""Run inspection and executor callback resources.

Routes
------
``GET /runs/{run_id}``
    Current record of a tracked run.
``POST /runs/{run_id}/acknowledgement``
    Executor confirms it picked the run up.
``POST /runs/{run_id}/completion``
    Executor reports ``{"outcome": "completed" | "failed"}``. Duplicate or
    late callbacks answer 200 with ``"transition": "already_terminal"``.

Scheduler calls take registry and dispatch locks, and a completion may
publish to the executor, so each handler runs its call in a worker thread.

"""

from __future__ import annotations

import asyncio
import typing as typ

import falcon
import msgspec

from ferryman.api.errors import InvalidInputError
from ferryman.registry.codec import encode_run

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ferryman.coordination.scheduler import Scheduler
    from ferryman.registry.models import TransitionResult

__all__ = [
    "CompletionRequest",
    "RunAcknowledgementResource",
    "RunCompletionResource",
    "RunResource",
]


class CompletionRequest(msgspec.Struct, kw_only=True, frozen=True):
    """Body of a completion callback."""

    outcome: typ.Literal["completed", "failed"]


def _serialize_transition(result: TransitionResult) -> dict[str, typ.Any]:
    return {"transition": str(result.outcome), "run": encode_run(result.record)}


class RunResource:
    """``GET /runs/{run_id}``."""

    def __init__(self, scheduler: Scheduler) -> None:
        """Configure the resource with the scheduler owning the registry."""
        self._scheduler = scheduler

    async def on_get(self, _req: Request, resp: Response, *, run_id: str) -> None:
        """Return the run record or 404."""
        run = await asyncio.to_thread(self._scheduler.get, run_id)
        resp.media = encode_run(run)
        resp.status = falcon.HTTP_200


class RunAcknowledgementResource:
    """``POST /runs/{run_id}/acknowledgement``."""

    def __init__(self, scheduler: Scheduler) -> None:
        """Configure the resource with the scheduler owning the registry."""
        self._scheduler = scheduler

    async def on_post(self, _req: Request, resp: Response, *, run_id: str) -> None:
        """Move the run to Running."""
        result = await asyncio.to_thread(self._scheduler.acknowledge, run_id)
        resp.media = _serialize_transition(result)
        resp.status = falcon.HTTP_200


class RunCompletionResource:
    """``POST /runs/{run_id}/completion``."""

    def __init__(self, scheduler: Scheduler) -> None:
        """Configure the resource with the scheduler owning the registry."""
        self._scheduler = scheduler

    async def on_post(self, req: Request, resp: Response, *, run_id: str) -> None:
        """Apply the completion outcome.

        Raises
        ------
        InvalidInputError
            If the body does not carry a valid ``outcome``.

        """
        body = await req.stream.read()
        try:
            request = msgspec.json.decode(body, type=CompletionRequest)
        except msgspec.DecodeError as exc:
            raise InvalidInputError(str(exc), field="outcome") from exc

        result = await asyncio.to_thread(
            self._scheduler.complete, run_id, request.outcome
        )
        resp.media = _serialize_transition(result)
        resp.status = falcon.HTTP_200
