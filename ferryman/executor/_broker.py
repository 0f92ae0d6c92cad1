"""Dramatiq broker bootstrap for the executor adapter.

The broker is resolved lazily, the first time an executor is built, rather
than at import time.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()
_TRUTHY = frozenset({"1", "true", "yes"})
_PYTEST_ENV_VARS = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS")


def _is_running_tests() -> bool:
    """Return True when running under pytest."""
    return "pytest" in sys.modules or any(key in os.environ for key in _PYTEST_ENV_VARS)


def stub_broker_allowed() -> bool:
    """Return whether an in-memory StubBroker may stand in for a real one."""
    allow = os.environ.get("FERRYMAN_ALLOW_STUB_BROKER", "").strip().lower()
    return allow in _TRUTHY or _is_running_tests()


def ensure_broker() -> dramatiq.Broker:
    """Return the global Dramatiq broker, installing a stub where allowed.

    Raises
    ------
    RuntimeError
        If no broker is configured and a stub is not allowed.

    """
    with _BROKER_LOCK:
        try:
            return dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: the default RabbitMQ broker's client is missing.
            if not stub_broker_allowed():
                message = (
                    "No Dramatiq broker configured. Set "
                    "FERRYMAN_ALLOW_STUB_BROKER=1 for local runs or configure "
                    "a real broker."
                )
                raise RuntimeError(message) from None
            broker = StubBroker()
            dramatiq.set_broker(broker)
            return broker
