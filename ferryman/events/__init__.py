"""Event normalization: provider payloads to canonical trigger events."""

from __future__ import annotations

from .errors import UnrecognizedEventShapeError
from .models import PROTECTED_EVENT_CLASSES, EventClass, RawEvent, TriggerEvent
from .normalizer import branch_name, classify, normalize, qualify_branch

__all__ = [
    "PROTECTED_EVENT_CLASSES",
    "EventClass",
    "RawEvent",
    "TriggerEvent",
    "UnrecognizedEventShapeError",
    "branch_name",
    "classify",
    "normalize",
    "qualify_branch",
]
