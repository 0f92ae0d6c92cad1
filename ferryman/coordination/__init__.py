"""Cancellation arbitration and run scheduling."""

from __future__ import annotations

from .arbiter import CancellationArbiter, Decision
from .config import SchedulerConfig
from .errors import DispatchTimeoutError
from .observability import (
    CoordinationEventLogger,
    CoordinationEventType,
    ErrorCategory,
    categorize_error,
)
from .scheduler import Scheduler, SweepResult

__all__ = [
    "CancellationArbiter",
    "CoordinationEventLogger",
    "CoordinationEventType",
    "Decision",
    "DispatchTimeoutError",
    "ErrorCategory",
    "Scheduler",
    "SchedulerConfig",
    "SweepResult",
    "categorize_error",
]
