"""Application factory for the ferryman Falcon ASGI application.

Usage
-----
Create a health-only app (no scheduler)::

    app = create_app()

Create the coordination app::

    from ferryman.api.app import AppDependencies, create_app

    deps = AppDependencies(scheduler=scheduler, audit_writer=writer)
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from ferryman.api.errors import register_error_handlers
from ferryman.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    import datetime as dt

    from ferryman.audit.writer import RunAuditWriter
    from ferryman.coordination.scheduler import Scheduler

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    scheduler
        Scheduler owning the run registry. Without it only the health
        endpoints are registered.
    audit_writer
        Optional writer persisting runs evicted by the sweep.
    sweep_interval
        When set, a lifespan task sweeps the scheduler at this interval.

    """

    scheduler: Scheduler | None = None
    audit_writer: RunAuditWriter | None = None
    sweep_interval: dt.timedelta | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or without a
        scheduler, only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    scheduler = dependencies.scheduler if dependencies is not None else None
    middleware: list[object] = []

    if (
        scheduler is not None
        and dependencies is not None
        and dependencies.sweep_interval is not None
    ):
        from ferryman.api.middleware import SweepMiddleware

        middleware.append(
            SweepMiddleware(
                scheduler,
                interval=dependencies.sweep_interval,
                audit_writer=dependencies.audit_writer,
            )
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(scheduler))

    if scheduler is not None:
        from ferryman.api.events.resources import EventsResource
        from ferryman.api.runs.resources import (
            RunAcknowledgementResource,
            RunCompletionResource,
            RunResource,
        )

        app.add_route("/events", EventsResource(scheduler))
        app.add_route("/runs/{run_id}", RunResource(scheduler))
        app.add_route(
            "/runs/{run_id}/acknowledgement", RunAcknowledgementResource(scheduler)
        )
        app.add_route("/runs/{run_id}/completion", RunCompletionResource(scheduler))

    register_error_handlers(app)

    return app
