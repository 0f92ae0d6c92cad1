"""ferryman: concurrency-group coordination for CI trigger events."""

from __future__ import annotations

__version__ = "0.1.0"
