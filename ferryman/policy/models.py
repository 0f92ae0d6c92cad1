"""Typed coordination policy structures.

A policy tells the resolver which event field becomes the concurrency-group
discriminant for each event class, whether newer runs cancel in-progress ones,
and which classes are protected from supersession.
"""

from __future__ import annotations

import dataclasses
import enum

import msgspec

from ferryman.events.models import PROTECTED_EVENT_CLASSES, EventClass

from .errors import PolicyValidationError, UnresolvableDiscriminantError


class DiscriminantField(enum.StrEnum):
    """Event fields that can distinguish concurrency groups."""

    COMMIT_SHA = "commit_sha"
    REF_NAME = "ref_name"
    HEAD_REF = "head_ref"
    BASE_REF = "base_ref"
    PULL_REQUEST_NUMBER = "pull_request_number"
    MERGE_QUEUE_ENTRY = "merge_queue_entry"


class ClassPolicy(msgspec.Struct, kw_only=True, frozen=True):
    """Coordination settings for one event class.

    Attributes
    ----------
    discriminant : DiscriminantField
        Event field used to build the group key.
    cancel_in_progress : bool
        Whether a newer run cancels a Running run in the same group. Queued
        runs are always superseded regardless of this flag.
    protected : bool
        Marks runs of this class immune to supersession by unprotected
        events. Merge-queue checks are protected whatever this says.

    """

    discriminant: DiscriminantField
    cancel_in_progress: bool = True
    protected: bool = False


class CoordinationPolicy(msgspec.Struct, kw_only=True, frozen=True):
    """Per-workflow coordination policy.

    Attributes
    ----------
    workflow : str
        Workflow identity; the first half of every group key.
    protected_may_cancel_unprotected : bool
        Allow a protected event to supersede unprotected runs sharing its
        group. Off by default so nothing crosses the protected boundary in
        either direction.
    classes : dict[EventClass, ClassPolicy]
        Settings for each event class the workflow reacts to.

    """

    workflow: str = "ci"
    protected_may_cancel_unprotected: bool = False
    classes: dict[EventClass, ClassPolicy] = msgspec.field(default_factory=dict)

    def __post_init__(self) -> None:
        """Reject policies that could collide merge-queue and ordinary groups."""
        issues: list[str] = []
        if not self.workflow.strip():
            issues.append("workflow must be a non-empty string")
        for event_class in PROTECTED_EVENT_CLASSES:
            entry = self.classes.get(event_class)
            if entry is None:
                continue
            if entry.discriminant is not DiscriminantField.MERGE_QUEUE_ENTRY:
                issues.append(
                    f"{event_class.value} must use the "
                    f"{DiscriminantField.MERGE_QUEUE_ENTRY.value!r} discriminant, "
                    f"got {entry.discriminant.value!r}"
                )
        if issues:
            raise PolicyValidationError(issues)

    def for_class(self, event_class: EventClass) -> ClassPolicy:
        """Return the settings for ``event_class``.

        Raises
        ------
        UnresolvableDiscriminantError
            If the policy does not configure ``event_class``.

        """
        try:
            return self.classes[event_class]
        except KeyError:
            raise UnresolvableDiscriminantError.unconfigured(event_class) from None

    def is_protected(self, event_class: EventClass) -> bool:
        """Return whether runs of ``event_class`` are protected.

        Policy data can add protection but never remove it from merge-queue
        checks.
        """
        if event_class in PROTECTED_EVENT_CLASSES:
            return True
        entry = self.classes.get(event_class)
        return entry is not None and entry.protected


@dataclasses.dataclass(frozen=True, slots=True)
class ConcurrencyGroupKey:
    """Identity of a concurrency group: ``(workflow, discriminant)``."""

    workflow: str
    discriminant: str

    def __str__(self) -> str:
        """Render as ``workflow/discriminant``."""
        return f"{self.workflow}/{self.discriminant}"


_PULL_REQUEST_CLASSES = tuple(
    event_class
    for event_class in EventClass
    if event_class.is_pull_request or event_class.is_pull_request_target
)


def default_policy(workflow: str = "ci") -> CoordinationPolicy:
    """Return the policy that reproduces the known-correct setup.

    Every push gets its own group, successive pull request events collapse
    into one group per pull request, and merge-queue checks get a group that
    no push or pull request can share.
    """
    pr_entry = ClassPolicy(discriminant=DiscriminantField.PULL_REQUEST_NUMBER)
    classes: dict[EventClass, ClassPolicy] = {
        EventClass.PUSH: ClassPolicy(discriminant=DiscriminantField.COMMIT_SHA),
        EventClass.MERGE_GROUP_CHECKS_REQUESTED: ClassPolicy(
            discriminant=DiscriminantField.MERGE_QUEUE_ENTRY, protected=True
        ),
        EventClass.BRANCH_CREATED: ClassPolicy(
            discriminant=DiscriminantField.REF_NAME
        ),
        EventClass.BRANCH_DELETED: ClassPolicy(
            discriminant=DiscriminantField.REF_NAME
        ),
        EventClass.ISSUE_OPENED: ClassPolicy(
            discriminant=DiscriminantField.COMMIT_SHA, cancel_in_progress=False
        ),
        EventClass.MANUAL_DISPATCH: ClassPolicy(
            discriminant=DiscriminantField.COMMIT_SHA, cancel_in_progress=False
        ),
    }
    classes.update(dict.fromkeys(_PULL_REQUEST_CLASSES, pr_entry))
    return CoordinationPolicy(workflow=workflow, classes=classes)
