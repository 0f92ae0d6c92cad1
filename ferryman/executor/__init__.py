"""Executor collaborators that receive start and cancel requests."""

from __future__ import annotations

from .dramatiq_executor import (
    CANCEL_ACTOR_NAME,
    DEFAULT_QUEUE_NAME,
    START_ACTOR_NAME,
    DramatiqExecutor,
)
from .protocol import Executor

__all__ = [
    "CANCEL_ACTOR_NAME",
    "DEFAULT_QUEUE_NAME",
    "START_ACTOR_NAME",
    "DramatiqExecutor",
    "Executor",
]
