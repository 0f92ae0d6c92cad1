"""Domain exceptions and Falcon error handlers for the API layer.

Each coordination error maps onto one HTTP status with a JSON problem body
carrying ``title``, ``description`` and the error category used in logs.

Usage
-----
Register every handler on a Falcon app::

    from ferryman.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from ferryman.coordination.errors import DispatchTimeoutError
from ferryman.coordination.observability import categorize_error
from ferryman.events.errors import UnrecognizedEventShapeError
from ferryman.policy.errors import UnresolvableDiscriminantError
from ferryman.registry.errors import InvalidTransitionError, RunNotFoundError

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "InvalidInputError",
    "handle_dispatch_timeout",
    "handle_invalid_input",
    "handle_invalid_transition",
    "handle_run_not_found",
    "handle_unrecognized_event",
    "handle_unresolvable_discriminant",
    "register_error_handlers",
]


class InvalidInputError(Exception):
    """Raised for request bodies that cannot be decoded (HTTP 400).

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def _problem(
    resp: Response,
    status: str,
    title: str,
    ex: Exception,
    **extra: str,
) -> None:
    resp.status = status
    media: dict[str, str] = {
        "title": title,
        "description": str(ex),
        "category": str(categorize_error(ex)),
    }
    media.update(extra)
    resp.media = media


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {"title": "Invalid input", "description": ex.reason}
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media


async def handle_unrecognized_event(
    _req: Request,
    resp: Response,
    ex: UnrecognizedEventShapeError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UnrecognizedEventShapeError`` to HTTP 400."""
    extra = {"field": ex.field} if ex.field is not None else {}
    _problem(resp, falcon.HTTP_400, "Unrecognized event", ex, **extra)


async def handle_unresolvable_discriminant(
    _req: Request,
    resp: Response,
    ex: UnresolvableDiscriminantError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UnresolvableDiscriminantError`` to HTTP 422."""
    _problem(
        resp,
        falcon.HTTP_422,
        "Unresolvable concurrency group",
        ex,
        event_class=str(ex.event_class),
    )


async def handle_dispatch_timeout(
    _req: Request,
    resp: Response,
    ex: DispatchTimeoutError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``DispatchTimeoutError`` to HTTP 503 with a retry hint."""
    _problem(resp, falcon.HTTP_503, "Admission timed out", ex, group=str(ex.key))
    resp.set_header("Retry-After", "1")


async def handle_run_not_found(
    _req: Request,
    resp: Response,
    ex: RunNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``RunNotFoundError`` to HTTP 404."""
    _problem(resp, falcon.HTTP_404, "Run not found", ex, run_id=ex.run_id)


async def handle_invalid_transition(
    _req: Request,
    resp: Response,
    ex: InvalidTransitionError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidTransitionError`` to HTTP 409."""
    _problem(resp, falcon.HTTP_409, "Invalid transition", ex, run_id=ex.run_id)


def register_error_handlers(app: App) -> None:
    """Install every ferryman error handler on ``app``."""
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(UnrecognizedEventShapeError, handle_unrecognized_event)
    app.add_error_handler(
        UnresolvableDiscriminantError, handle_unresolvable_discriminant
    )
    app.add_error_handler(DispatchTimeoutError, handle_dispatch_timeout)
    app.add_error_handler(RunNotFoundError, handle_run_not_found)
    app.add_error_handler(InvalidTransitionError, handle_invalid_transition)
