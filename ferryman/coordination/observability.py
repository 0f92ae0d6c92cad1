"""Structured coordination events and error categorization.

Every admission, dispatch, cancellation and completion is emitted as one
``[event.type] key=value ...`` log line so log aggregators can rebuild the
decision trail of a group without access to the registry.
"""

from __future__ import annotations

import enum
import typing as typ

from ferryman.events.errors import UnrecognizedEventShapeError
from ferryman.logging import get_logger, log_info, log_warning
from ferryman.policy.errors import PolicyValidationError, UnresolvableDiscriminantError
from ferryman.registry.errors import RegistryContentionError, RunNotFoundError

from .errors import DispatchTimeoutError

if typ.TYPE_CHECKING:
    from ferryman.events.models import RawEvent
    from ferryman.logging import SupportsLog
    from ferryman.policy.models import ConcurrencyGroupKey
    from ferryman.registry.models import RunRecord

logger = get_logger(__name__)


class CoordinationEventType(enum.StrEnum):
    """Structured log event types for coordination decisions."""

    RUN_ADMITTED = "coordination.run.admitted"
    RUN_STARTED = "coordination.run.started"
    RUN_CANCELED = "coordination.run.canceled"
    RUN_FINISHED = "coordination.run.finished"
    RUN_TIMED_OUT = "coordination.run.timed_out"
    RUN_EVICTED = "coordination.run.evicted"
    SUBMISSION_REJECTED = "coordination.submission.rejected"
    ADMISSION_CONTENDED = "coordination.admission.contended"
    START_SUPPRESSED = "coordination.start.suppressed"


class ErrorCategory(enum.StrEnum):
    """Categories used to route submission failures."""

    REJECTED_INPUT = "rejected_input"
    CONFIGURATION = "configuration"
    TRANSIENT = "transient"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (UnrecognizedEventShapeError, ErrorCategory.REJECTED_INPUT),
    (UnresolvableDiscriminantError, ErrorCategory.CONFIGURATION),
    (PolicyValidationError, ErrorCategory.CONFIGURATION),
    (RegistryContentionError, ErrorCategory.TRANSIENT),
    (DispatchTimeoutError, ErrorCategory.TRANSIENT),
    (RunNotFoundError, ErrorCategory.NOT_FOUND),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Return the alert category for ``exc``."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class CoordinationEventLogger:
    """Emit structured coordination events through femtologging.

    Decisions log at INFO; rejections, contention, timeouts and suppressed
    starts log at WARNING.
    """

    def __init__(self, sink: SupportsLog | None = None) -> None:
        """Log to ``sink``, defaulting to this module's logger."""
        self._logger = sink or logger

    def run_admitted(self, run: RunRecord, canceled: int) -> None:
        """Log a newly admitted run."""
        event = run.source_event
        log_info(
            self._logger,
            "[%s] run_id=%s group=%s event_class=%s observed_at=%d created_at=%d "
            "protected=%s superseded=%d",
            CoordinationEventType.RUN_ADMITTED,
            run.run_id,
            run.group_key,
            event.event_class,
            event.observed_at,
            run.created_at,
            event.is_protected,
            canceled,
        )

    def run_started(self, run: RunRecord) -> None:
        """Log a start request sent to the executor."""
        log_info(
            self._logger,
            "[%s] run_id=%s group=%s commit_sha=%s",
            CoordinationEventType.RUN_STARTED,
            run.run_id,
            run.group_key,
            run.source_event.commit_sha,
        )

    def run_canceled(self, run: RunRecord, superseded_by: RunRecord) -> None:
        """Log a run superseded by a newer admission."""
        log_info(
            self._logger,
            "[%s] run_id=%s group=%s superseded_by=%s previous_created_at=%d",
            CoordinationEventType.RUN_CANCELED,
            run.run_id,
            run.group_key,
            superseded_by.run_id,
            run.created_at,
        )

    def run_finished(self, run: RunRecord) -> None:
        """Log an executor completion callback that was applied."""
        log_info(
            self._logger,
            "[%s] run_id=%s group=%s state=%s",
            CoordinationEventType.RUN_FINISHED,
            run.run_id,
            run.group_key,
            run.state,
        )

    def run_timed_out(self, run: RunRecord) -> None:
        """Log a dispatched run that the executor never acknowledged."""
        log_warning(
            self._logger,
            "[%s] run_id=%s group=%s dispatched_at=%s",
            CoordinationEventType.RUN_TIMED_OUT,
            run.run_id,
            run.group_key,
            run.dispatched_at.isoformat() if run.dispatched_at else None,
        )

    def run_evicted(self, run: RunRecord) -> None:
        """Log removal of a terminal run from the registry."""
        log_info(
            self._logger,
            "[%s] run_id=%s group=%s state=%s",
            CoordinationEventType.RUN_EVICTED,
            run.run_id,
            run.group_key,
            run.state,
        )

    def submission_rejected(self, raw: RawEvent, error: BaseException) -> None:
        """Log a submission refused before admission."""
        log_warning(
            self._logger,
            "[%s] event=%s action=%s delivery_id=%s error_type=%s "
            "error_category=%s error_message=%s",
            CoordinationEventType.SUBMISSION_REJECTED,
            raw.event,
            raw.action,
            raw.delivery_id,
            type(error).__name__,
            categorize_error(error),
            str(error),
        )

    def admission_contended(self, key: ConcurrencyGroupKey, attempt: int) -> None:
        """Log a stale admission that will be retried."""
        log_warning(
            self._logger,
            "[%s] group=%s attempt=%d",
            CoordinationEventType.ADMISSION_CONTENDED,
            key,
            attempt,
        )

    def start_suppressed(self, run: RunRecord) -> None:
        """Log a start withheld because the run was already terminal."""
        log_warning(
            self._logger,
            "[%s] run_id=%s group=%s state=%s",
            CoordinationEventType.START_SUPPRESSED,
            run.run_id,
            run.group_key,
            run.state,
        )
