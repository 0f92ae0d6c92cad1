"""Configuration for the scheduler and its maintenance sweep.

Usage
-----
Create a configuration with defaults:

>>> config = SchedulerConfig()
>>> config.max_admission_attempts
5

Or load from environment variables:

>>> import os
>>> os.environ["FERRYMAN_DISPATCH_TIMEOUT_S"] = "120"
>>> SchedulerConfig.from_env().dispatch_timeout.total_seconds()
120.0

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os

_DEFAULT_DISPATCH_TIMEOUT_S = 300.0
_DEFAULT_TERMINAL_GRACE_S = 600.0
_DEFAULT_MAX_ADMISSION_ATTEMPTS = 5
_DEFAULT_SWEEP_INTERVAL_S = 15.0


@dc.dataclass(frozen=True, slots=True)
class SchedulerConfig:
    """Runtime knobs for run admission and housekeeping.

    Attributes
    ----------
    dispatch_timeout
        How long a dispatched run may wait for executor acknowledgment before
        it is failed with ``dispatch_timeout``.
    terminal_grace
        How long terminal runs stay in the registry for observability before
        the sweep evicts them. Zero evicts on the next sweep.
    max_admission_attempts
        Admission attempts made against a contended group before the
        submission is rejected.
    sweep_interval
        Delay between maintenance sweeps in the runtime.

    """

    dispatch_timeout: dt.timedelta = dt.timedelta(seconds=_DEFAULT_DISPATCH_TIMEOUT_S)
    terminal_grace: dt.timedelta = dt.timedelta(seconds=_DEFAULT_TERMINAL_GRACE_S)
    max_admission_attempts: int = _DEFAULT_MAX_ADMISSION_ATTEMPTS
    sweep_interval: dt.timedelta = dt.timedelta(seconds=_DEFAULT_SWEEP_INTERVAL_S)

    @staticmethod
    def _parse_seconds(env_var: str, default: float, *, allow_zero: bool) -> float:
        """Read a non-negative number of seconds, falling back to ``default``."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            msg = f"{env_var} must be a number of seconds, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 0 or (value == 0 and not allow_zero):
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to ``default``."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> SchedulerConfig:
        """Create configuration from environment variables.

        Reads ``FERRYMAN_DISPATCH_TIMEOUT_S``, ``FERRYMAN_TERMINAL_GRACE_S``
        (zero allowed), ``FERRYMAN_MAX_ADMISSION_ATTEMPTS`` and
        ``FERRYMAN_SWEEP_INTERVAL_S``.

        Raises
        ------
        ValueError
            If any variable is set to an invalid value.

        """
        return cls(
            dispatch_timeout=dt.timedelta(
                seconds=cls._parse_seconds(
                    "FERRYMAN_DISPATCH_TIMEOUT_S",
                    _DEFAULT_DISPATCH_TIMEOUT_S,
                    allow_zero=False,
                )
            ),
            terminal_grace=dt.timedelta(
                seconds=cls._parse_seconds(
                    "FERRYMAN_TERMINAL_GRACE_S",
                    _DEFAULT_TERMINAL_GRACE_S,
                    allow_zero=True,
                )
            ),
            max_admission_attempts=cls._parse_positive_int(
                "FERRYMAN_MAX_ADMISSION_ATTEMPTS", _DEFAULT_MAX_ADMISSION_ATTEMPTS
            ),
            sweep_interval=dt.timedelta(
                seconds=cls._parse_seconds(
                    "FERRYMAN_SWEEP_INTERVAL_S",
                    _DEFAULT_SWEEP_INTERVAL_S,
                    allow_zero=False,
                )
            ),
        )
