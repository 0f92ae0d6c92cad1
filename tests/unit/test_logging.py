"""Unit tests for the femtologging helpers."""

from __future__ import annotations

import pytest

from ferryman.logging import (
    configure_logging,
    log_debug,
    log_error,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        ("debug", "DEBUG", False),
        (" trace ", "TRACE", False),
        ("WARN", "WARN", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("loud", "INFO", True),
    ],
)
def test_normalize_log_level(raw: str | None, expected: str, *, invalid: bool) -> None:
    """Known levels are upper-cased; anything else falls back to INFO."""
    assert normalize_log_level(raw) == (expected, invalid)


def test_templates_are_formatted_before_logging() -> None:
    """Arguments are interpolated with percent formatting."""
    logger = _FakeLogger()

    log_info(logger, "run %s admitted (%d canceled)", "r1", 2)
    log_debug(logger, "no arguments 100%")

    assert logger.calls == [
        ("INFO", "run r1 admitted (2 canceled)", None, False),
        ("DEBUG", "no arguments 100%", None, False),
    ]


def test_exc_info_is_forwarded() -> None:
    """Exception payloads reach the logger untouched."""
    logger = _FakeLogger()
    exc = RuntimeError("broker down")

    log_warning(logger, "retrying %s", "start", exc_info=exc)
    log_error(logger, "gave up", exc_info=True)

    assert logger.calls == [
        ("WARNING", "retrying start", exc, False),
        ("ERROR", "gave up", True, False),
    ]


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [("ERROR", "ERROR", False), ("verbose", "INFO", True)],
)
def test_configure_logging(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: str, *, invalid: bool
) -> None:
    """configure_logging installs the normalized level."""
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("ferryman.logging.basicConfig", fake_basic_config)

    assert configure_logging(raw) == (expected, invalid)
    assert captured == {"level": expected, "force": False}
