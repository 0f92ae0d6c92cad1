"""Health probe resources for Kubernetes liveness and readiness checks.

Usage
-----
Register health endpoints on the Falcon app::

    from ferryman.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(scheduler))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ferryman.coordination.scheduler import Scheduler

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Reports ``ready`` together with the number of runs currently tracked, or
    ``unavailable`` (HTTP 503) when the app was built without a scheduler.
    """

    def __init__(self, scheduler: Scheduler | None = None) -> None:
        """Probe ``scheduler`` when given."""
        self._scheduler = scheduler

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        if self._scheduler is None:
            resp.media = {"status": "unavailable"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return
        resp.media = {"status": "ready", "tracked_runs": len(self._scheduler.registry)}
        resp.status = HTTPStatus.OK
