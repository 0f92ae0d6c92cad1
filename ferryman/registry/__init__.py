"""Run registry: the coordinator's only shared mutable state."""

from __future__ import annotations

from .errors import (
    InvalidTransitionError,
    RegistryContentionError,
    RegistryError,
    RunNotFoundError,
)
from .models import (
    TERMINAL_STATES,
    Admission,
    GroupSnapshot,
    RunRecord,
    RunState,
    TerminalReason,
    TransitionOutcome,
    TransitionResult,
)
from .store import RunRegistry

__all__ = [
    "TERMINAL_STATES",
    "Admission",
    "GroupSnapshot",
    "InvalidTransitionError",
    "RegistryContentionError",
    "RegistryError",
    "RunNotFoundError",
    "RunRecord",
    "RunRegistry",
    "RunState",
    "TerminalReason",
    "TransitionOutcome",
    "TransitionResult",
]
