"""Unit tests for ferryman.api.errors exceptions and error handlers.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_errors.py

"""

from __future__ import annotations

import falcon.asgi
import falcon.testing
import pytest

from ferryman.api.errors import InvalidInputError, register_error_handlers
from ferryman.coordination import DispatchTimeoutError
from ferryman.events import EventClass
from ferryman.events.errors import UnrecognizedEventShapeError
from ferryman.policy import ConcurrencyGroupKey, UnresolvableDiscriminantError
from ferryman.registry import InvalidTransitionError, RunNotFoundError, RunState


class _RaisingResource:
    """Resource raising whatever exception it was built with."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        raise self._exc


def _client_raising(exc: Exception) -> falcon.testing.TestClient:
    app = falcon.asgi.App()
    app.add_route("/boom", _RaisingResource(exc))
    register_error_handlers(app)
    return falcon.testing.TestClient(app)


class TestInvalidInputError:
    """Tests for InvalidInputError and its handler."""

    def test_message_includes_field(self) -> None:
        """The exception message is prefixed with the field name."""
        assert str(InvalidInputError("must be set", field="outcome")) == (
            "outcome: must be set"
        )

    def test_returns_400_without_field(self) -> None:
        """Errors without a field omit it from the body."""
        result = _client_raising(InvalidInputError("bad body")).simulate_get("/boom")

        assert result.status == falcon.HTTP_400, "expected HTTP 400"
        assert result.json == {"title": "Invalid input", "description": "bad body"}

    def test_returns_400_with_field(self) -> None:
        """Errors with a field name it in the body."""
        result = _client_raising(
            InvalidInputError("not json", field="body")
        ).simulate_get("/boom")

        assert result.json["field"] == "body", "missing field in body"


class TestCoordinationErrors:
    """Coordination failures map onto distinct HTTP statuses."""

    @pytest.mark.parametrize(
        ("exc", "status", "category"),
        [
            (
                UnrecognizedEventShapeError.unknown_class("star", "created"),
                falcon.HTTP_400,
                "rejected_input",
            ),
            (
                UnresolvableDiscriminantError.unconfigured(EventClass.PUSH),
                falcon.HTTP_422,
                "configuration",
            ),
            (
                DispatchTimeoutError.contention(ConcurrencyGroupKey("ci", "a1"), 5),
                falcon.HTTP_503,
                "transient",
            ),
            (RunNotFoundError("r1"), falcon.HTTP_404, "not_found"),
            (
                InvalidTransitionError("r1", RunState.RUNNING, RunState.QUEUED),
                falcon.HTTP_409,
                "unknown",
            ),
        ],
    )
    def test_status_and_category(
        self, exc: Exception, status: str, category: str
    ) -> None:
        """Each error carries its status, message and category."""
        result = _client_raising(exc).simulate_get("/boom")

        assert result.status == status
        assert result.json["description"] == str(exc)
        assert result.json["category"] == category

    def test_unrecognized_event_names_field(self) -> None:
        """Missing-field errors expose the field name."""
        exc = UnrecognizedEventShapeError.missing("payload.after", "push")

        result = _client_raising(exc).simulate_get("/boom")

        assert result.json["field"] == "payload.after"

    def test_unresolvable_discriminant_names_event_class(self) -> None:
        """422 responses identify the event class that failed."""
        exc = UnresolvableDiscriminantError.absent(
            EventClass.PULL_REQUEST_SYNCHRONIZE, "pull_request_number"
        )

        result = _client_raising(exc).simulate_get("/boom")

        assert result.json["event_class"] == "pull_request.synchronize"

    def test_dispatch_timeout_sets_retry_after(self) -> None:
        """Contended admissions tell clients to retry."""
        exc = DispatchTimeoutError.contention(ConcurrencyGroupKey("ci", "pr-4"), 5)

        result = _client_raising(exc).simulate_get("/boom")

        assert result.headers.get("retry-after") == "1"
        assert result.json["group"] == "ci/pr-4"

    def test_invalid_transition_names_run(self) -> None:
        """409 responses identify the run."""
        exc = InvalidTransitionError("r9", RunState.RUNNING, RunState.QUEUED)

        result = _client_raising(exc).simulate_get("/boom")

        assert result.json["run_id"] == "r9"
        assert result.json["title"] == "Invalid transition"
