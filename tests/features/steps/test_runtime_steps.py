"""Behavioural coverage for the ferryman runtime service."""

from __future__ import annotations

import typing as typ

import dramatiq
import falcon.testing
import msgspec
import pytest
from dramatiq.brokers.stub import StubBroker
from pytest_bdd import given, parsers, scenario, then, when

from tests.helpers.trigger_events import push_event

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from falcon.testing.client import Result


class RuntimeContext(typ.TypedDict, total=False):
    """Shared mutable scenario state."""

    client: falcon.testing.TestClient
    response: Result


@scenario(
    "../runtime.feature",
    "Health endpoint returns ok status",
)
def test_health_endpoint_returns_ok() -> None:
    """Wrap the pytest-bdd scenario for health endpoint."""


@scenario(
    "../runtime.feature",
    "Ready endpoint reports tracked runs",
)
def test_ready_endpoint_reports_tracked_runs() -> None:
    """Wrap the pytest-bdd scenario for ready endpoint."""


@scenario(
    "../runtime.feature",
    "Unsupported events are rejected",
)
def test_unsupported_events_rejected() -> None:
    """Wrap the pytest-bdd scenario for event rejection."""


@pytest.fixture
def runtime_context(monkeypatch: pytest.MonkeyPatch) -> cabc.Iterator[RuntimeContext]:
    """Provision a test client for the runtime app on an in-memory broker."""
    from ferryman.runtime import create_app

    monkeypatch.delenv("FERRYMAN_POLICY_PATH", raising=False)
    monkeypatch.delenv("FERRYMAN_DATABASE_URL", raising=False)
    broker = StubBroker()
    dramatiq.set_broker(broker)
    yield {"client": falcon.testing.TestClient(create_app())}
    broker.close()


@given("a running ferryman runtime app")
def given_running_app(runtime_context: RuntimeContext) -> None:
    """Ensure the runtime app is available via the test client."""
    assert "client" in runtime_context, "client should be set by fixture"


@when(parsers.parse("I request GET {path}"))
def when_request_get(runtime_context: RuntimeContext, path: str) -> None:
    """Issue a GET request to the given path."""
    runtime_context["response"] = runtime_context["client"].simulate_get(path)


@when(parsers.parse('I post a push of commit "{sha}" to /events'))
def when_post_push(runtime_context: RuntimeContext, sha: str) -> None:
    """Submit a push event through the HTTP intake."""
    runtime_context["response"] = runtime_context["client"].simulate_post(
        "/events", body=msgspec.json.encode(push_event(sha=sha))
    )


@when(parsers.parse('I post an "{event}" event to /events'))
def when_post_event(runtime_context: RuntimeContext, event: str) -> None:
    """Submit a bare event envelope of the given provider type."""
    runtime_context["response"] = runtime_context["client"].simulate_post(
        "/events", json={"event": event, "action": "created"}
    )


@then(parsers.parse("the response status is {status:d}"))
def then_response_status(runtime_context: RuntimeContext, status: int) -> None:
    """Assert the HTTP response status code."""
    response = runtime_context["response"]
    assert response.status_code == status, (
        f"expected status {status}, got {response.status_code}"
    )


@then(parsers.parse('the response status field is "{expected_status}"'))
def then_response_body_status(
    runtime_context: RuntimeContext, expected_status: str
) -> None:
    """Assert the response JSON body carries the expected status."""
    response = runtime_context["response"]
    assert response.json["status"] == expected_status, (
        f"expected status {expected_status!r}, got {response.json}"
    )


@then(parsers.parse("the response reports {count:d} tracked run"))
def then_tracked_runs(runtime_context: RuntimeContext, count: int) -> None:
    """Assert how many runs the readiness probe reports."""
    assert runtime_context["response"].json["tracked_runs"] == count
