"""Canonical trigger event records."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec


class EventClass(enum.StrEnum):
    """Closed set of repository happenings the coordinator understands."""

    PUSH = "push"
    PULL_REQUEST_OPENED = "pull_request.opened"
    PULL_REQUEST_SYNCHRONIZE = "pull_request.synchronize"
    PULL_REQUEST_EDITED = "pull_request.edited"
    PULL_REQUEST_ENQUEUED = "pull_request.enqueued"
    PULL_REQUEST_DEQUEUED = "pull_request.dequeued"
    PULL_REQUEST_CLOSED = "pull_request.closed"
    PULL_REQUEST_TARGET_OPENED = "pull_request_target.opened"
    PULL_REQUEST_TARGET_SYNCHRONIZE = "pull_request_target.synchronize"
    PULL_REQUEST_TARGET_EDITED = "pull_request_target.edited"
    PULL_REQUEST_TARGET_CLOSED = "pull_request_target.closed"
    MERGE_GROUP_CHECKS_REQUESTED = "merge_group.checks_requested"
    BRANCH_CREATED = "create.branch"
    BRANCH_DELETED = "delete.branch"
    ISSUE_OPENED = "issues.opened"
    MANUAL_DISPATCH = "workflow_dispatch"

    @property
    def family(self) -> str:
        """Return the provider event name this class belongs to."""
        return self.value.split(".", 1)[0]

    @property
    def is_pull_request(self) -> bool:
        """Return True for ``pull_request`` classes (not ``pull_request_target``)."""
        return self.family == "pull_request"

    @property
    def is_pull_request_target(self) -> bool:
        """Return True for ``pull_request_target`` classes."""
        return self.family == "pull_request_target"


PROTECTED_EVENT_CLASSES: typ.Final[frozenset[EventClass]] = frozenset(
    {EventClass.MERGE_GROUP_CHECKS_REQUESTED}
)


class RawEvent(msgspec.Struct, kw_only=True, frozen=True):
    """Provider-shaped event as handed over by the transport layer.

    Attributes
    ----------
    event : str
        Provider event name, e.g. ``push`` or ``merge_group``.
    action : str, optional
        Activity type, e.g. ``synchronize`` or ``checks_requested``.
    payload : dict[str, Any]
        Webhook payload body.
    sha : str, optional
        Commit from the delivery context. Required for classes whose payload
        carries no commit (branch, issue and manual dispatch events).
    delivery_id : str, optional
        Provider delivery identifier, preserved for audit.

    """

    event: str
    action: str | None = None
    payload: dict[str, typ.Any] = msgspec.field(default_factory=dict)
    sha: str | None = None
    delivery_id: str | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class TriggerEvent:
    """Immutable, normalized record of one observed repository happening.

    ``observed_at`` is the coordinator's ingestion sequence number. It says
    nothing about causal order, even between events of the same pull request.
    """

    event_class: EventClass
    ref_name: str
    commit_sha: str
    observed_at: int
    pull_request_number: int | None = None
    head_ref: str | None = None
    base_ref: str | None = None
    head_sha: str | None = None
    delivery_id: str | None = None

    @property
    def is_protected(self) -> bool:
        """Return True when the event drives a merge-queue check."""
        return self.event_class in PROTECTED_EVENT_CLASSES
