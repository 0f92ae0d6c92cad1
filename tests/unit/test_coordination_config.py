"""Unit tests for SchedulerConfig."""

from __future__ import annotations

import datetime as dt

import pytest

from ferryman.coordination import SchedulerConfig

_ENV_VARS = (
    "FERRYMAN_DISPATCH_TIMEOUT_S",
    "FERRYMAN_TERMINAL_GRACE_S",
    "FERRYMAN_MAX_ADMISSION_ATTEMPTS",
    "FERRYMAN_SWEEP_INTERVAL_S",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSchedulerConfig:
    """Tests for SchedulerConfig dataclass."""

    def test_defaults(self) -> None:
        """Defaults match the documented values."""
        config = SchedulerConfig()
        assert config.dispatch_timeout == dt.timedelta(seconds=300)
        assert config.terminal_grace == dt.timedelta(seconds=600)
        assert config.max_admission_attempts == 5
        assert config.sweep_interval == dt.timedelta(seconds=15)

    def test_from_env_without_variables_uses_defaults(self) -> None:
        """An empty environment yields the default configuration."""
        assert SchedulerConfig.from_env() == SchedulerConfig()

    def test_from_env_reads_every_variable(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Each variable maps onto its field."""
        monkeypatch.setenv("FERRYMAN_DISPATCH_TIMEOUT_S", "120")
        monkeypatch.setenv("FERRYMAN_TERMINAL_GRACE_S", "0")
        monkeypatch.setenv("FERRYMAN_MAX_ADMISSION_ATTEMPTS", "9")
        monkeypatch.setenv("FERRYMAN_SWEEP_INTERVAL_S", "2.5")

        config = SchedulerConfig.from_env()

        assert config.dispatch_timeout == dt.timedelta(seconds=120)
        assert config.terminal_grace == dt.timedelta(0)
        assert config.max_admission_attempts == 9
        assert config.sweep_interval == dt.timedelta(seconds=2.5)

    def test_blank_values_fall_back_to_defaults(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Whitespace-only values are treated as unset."""
        monkeypatch.setenv("FERRYMAN_MAX_ADMISSION_ATTEMPTS", "  ")

        assert SchedulerConfig.from_env().max_admission_attempts == 5

    @pytest.mark.parametrize(
        ("name", "value", "fragment"),
        [
            pytest.param(
                "FERRYMAN_DISPATCH_TIMEOUT_S", "soon", "number", id="timeout-text"
            ),
            pytest.param(
                "FERRYMAN_DISPATCH_TIMEOUT_S", "0", "positive", id="timeout-zero"
            ),
            pytest.param(
                "FERRYMAN_TERMINAL_GRACE_S", "-1", "positive", id="grace-negative"
            ),
            pytest.param(
                "FERRYMAN_MAX_ADMISSION_ATTEMPTS", "2.5", "integer", id="attempts"
            ),
            pytest.param(
                "FERRYMAN_MAX_ADMISSION_ATTEMPTS", "0", "positive", id="attempts-zero"
            ),
            pytest.param(
                "FERRYMAN_SWEEP_INTERVAL_S", "0", "positive", id="sweep-zero"
            ),
        ],
    )
    def test_invalid_values_raise(
        self,
        monkeypatch: pytest.MonkeyPatch,
        name: str,
        value: str,
        fragment: str,
    ) -> None:
        """Invalid values name the offending variable."""
        monkeypatch.setenv(name, value)

        with pytest.raises(ValueError, match=name) as excinfo:
            SchedulerConfig.from_env()

        assert fragment in str(excinfo.value)
