"""Map provider-shaped events onto canonical :class:`TriggerEvent` records.

The commit identity carried by a trigger event depends on its class:

- push: the pushed commit (``after``);
- pull_request: the proposed merge commit, not the branch head. The head is
  only available from the payload ``after`` field (or ``pull_request.head``);
- pull_request_target: the current base-branch commit, unrelated to the pull
  request content;
- merge_group: the temporary merge-queue commit at the head of the synthetic
  queue branch, fast-forwarded onto the base branch if the merge succeeds.

Branch, issue and manual dispatch payloads carry no commit, so the delivery
context ``sha`` must be supplied for them.
"""

from __future__ import annotations

import re
import typing as typ

import msgspec

from .errors import UnrecognizedEventShapeError
from .models import EventClass, RawEvent, TriggerEvent

_BRANCH_PREFIX = "refs/heads/"
_QUEUE_ENTRY_PATTERN = re.compile(r"/pr-(?P<number>\d+)-[^/]+$")

_CLASS_INDEX: dict[tuple[str, str | None], EventClass] = {
    ("push", None): EventClass.PUSH,
    ("pull_request", "opened"): EventClass.PULL_REQUEST_OPENED,
    ("pull_request", "synchronize"): EventClass.PULL_REQUEST_SYNCHRONIZE,
    ("pull_request", "edited"): EventClass.PULL_REQUEST_EDITED,
    ("pull_request", "enqueued"): EventClass.PULL_REQUEST_ENQUEUED,
    ("pull_request", "dequeued"): EventClass.PULL_REQUEST_DEQUEUED,
    ("pull_request", "closed"): EventClass.PULL_REQUEST_CLOSED,
    ("pull_request_target", "opened"): EventClass.PULL_REQUEST_TARGET_OPENED,
    ("pull_request_target", "synchronize"): (
        EventClass.PULL_REQUEST_TARGET_SYNCHRONIZE
    ),
    ("pull_request_target", "edited"): EventClass.PULL_REQUEST_TARGET_EDITED,
    ("pull_request_target", "closed"): EventClass.PULL_REQUEST_TARGET_CLOSED,
    ("merge_group", "checks_requested"): EventClass.MERGE_GROUP_CHECKS_REQUESTED,
    ("issues", "opened"): EventClass.ISSUE_OPENED,
    ("workflow_dispatch", None): EventClass.MANUAL_DISPATCH,
}


class _Commitish(msgspec.Struct):
    ref: str
    sha: str


class _PullRequest(msgspec.Struct):
    number: int
    head: _Commitish
    base: _Commitish
    merge_commit_sha: str | None = None


class _PushPayload(msgspec.Struct):
    ref: str
    after: str


class _PullRequestPayload(msgspec.Struct):
    pull_request: _PullRequest
    after: str | None = None


class _MergeGroup(msgspec.Struct):
    head_sha: str
    head_ref: str
    base_ref: str


class _MergeGroupPayload(msgspec.Struct):
    merge_group: _MergeGroup


class _RefPayload(msgspec.Struct):
    ref: str
    ref_type: str


class _Repository(msgspec.Struct):
    default_branch: str


class _RepositoryPayload(msgspec.Struct):
    repository: _Repository


class _DispatchPayload(msgspec.Struct):
    ref: str


def qualify_branch(name: str) -> str:
    """Return ``name`` as a fully qualified ref."""
    return name if name.startswith("refs/") else f"{_BRANCH_PREFIX}{name}"


def branch_name(ref: str) -> str:
    """Strip the ``refs/heads/`` prefix from ``ref`` when present."""
    return ref.removeprefix(_BRANCH_PREFIX)


def classify(raw: RawEvent) -> EventClass:
    """Return the event class declared by ``raw``.

    Raises
    ------
    UnrecognizedEventShapeError
        If the event/activity combination is not supported.

    """
    action = raw.action or None
    if raw.event in {"create", "delete"}:
        ref_type = raw.payload.get("ref_type")
        if ref_type == "branch":
            return (
                EventClass.BRANCH_CREATED
                if raw.event == "create"
                else EventClass.BRANCH_DELETED
            )
        raise UnrecognizedEventShapeError.unknown_class(
            raw.event, ref_type if isinstance(ref_type, str) else None
        )
    if raw.event in {"push", "workflow_dispatch"}:
        action = None
    try:
        return _CLASS_INDEX[(raw.event, action)]
    except KeyError:
        raise UnrecognizedEventShapeError.unknown_class(raw.event, action) from None


def _decode[T](raw: RawEvent, shape: type[T], declared: EventClass) -> T:
    try:
        return msgspec.convert(raw.payload, type=shape)
    except msgspec.ValidationError as exc:
        raise UnrecognizedEventShapeError.invalid_payload(declared, str(exc)) from exc


def _context_sha(raw: RawEvent, declared: EventClass) -> str:
    sha = (raw.sha or "").strip()
    if not sha:
        raise UnrecognizedEventShapeError.missing("sha", declared)
    return sha


def _normalize_push(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    payload = _decode(raw, _PushPayload, declared)
    return TriggerEvent(
        event_class=declared,
        ref_name=payload.ref,
        commit_sha=payload.after,
        observed_at=observed_at,
        delivery_id=raw.delivery_id,
    )


def _normalize_pull_request(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    payload = _decode(raw, _PullRequestPayload, declared)
    pull_request = payload.pull_request
    if declared.is_pull_request_target:
        return TriggerEvent(
            event_class=declared,
            ref_name=qualify_branch(pull_request.base.ref),
            commit_sha=pull_request.base.sha,
            observed_at=observed_at,
            pull_request_number=pull_request.number,
            head_ref=branch_name(pull_request.head.ref),
            base_ref=branch_name(pull_request.base.ref),
            head_sha=payload.after or pull_request.head.sha,
            delivery_id=raw.delivery_id,
        )

    if not pull_request.merge_commit_sha:
        raise UnrecognizedEventShapeError.missing(
            "pull_request.merge_commit_sha", declared
        )
    return TriggerEvent(
        event_class=declared,
        ref_name=f"refs/pull/{pull_request.number}/merge",
        commit_sha=pull_request.merge_commit_sha,
        observed_at=observed_at,
        pull_request_number=pull_request.number,
        head_ref=branch_name(pull_request.head.ref),
        base_ref=branch_name(pull_request.base.ref),
        head_sha=payload.after or pull_request.head.sha,
        delivery_id=raw.delivery_id,
    )


def _normalize_merge_group(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    group = _decode(raw, _MergeGroupPayload, declared).merge_group
    match = _QUEUE_ENTRY_PATTERN.search(group.head_ref)
    if match is None:
        raise UnrecognizedEventShapeError.malformed(
            "merge_group.head_ref",
            declared,
            f"expected a queue branch ending in pr-<number>-<sha>, "
            f"got {group.head_ref!r}",
        )
    return TriggerEvent(
        event_class=declared,
        ref_name=qualify_branch(group.head_ref),
        commit_sha=group.head_sha,
        observed_at=observed_at,
        pull_request_number=int(match.group("number")),
        base_ref=branch_name(group.base_ref),
        delivery_id=raw.delivery_id,
    )


def _normalize_branch(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    payload = _decode(raw, _RefPayload, declared)
    return TriggerEvent(
        event_class=declared,
        ref_name=qualify_branch(payload.ref),
        commit_sha=_context_sha(raw, declared),
        observed_at=observed_at,
        delivery_id=raw.delivery_id,
    )


def _normalize_issue(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    payload = _decode(raw, _RepositoryPayload, declared)
    return TriggerEvent(
        event_class=declared,
        ref_name=qualify_branch(payload.repository.default_branch),
        commit_sha=_context_sha(raw, declared),
        observed_at=observed_at,
        delivery_id=raw.delivery_id,
    )


def _normalize_dispatch(
    raw: RawEvent, declared: EventClass, observed_at: int
) -> TriggerEvent:
    payload = _decode(raw, _DispatchPayload, declared)
    return TriggerEvent(
        event_class=declared,
        ref_name=qualify_branch(payload.ref),
        commit_sha=_context_sha(raw, declared),
        observed_at=observed_at,
        delivery_id=raw.delivery_id,
    )


type _Normalizer = typ.Callable[[RawEvent, EventClass, int], TriggerEvent]

_NORMALIZERS: dict[str, _Normalizer] = {
    "push": _normalize_push,
    "pull_request": _normalize_pull_request,
    "pull_request_target": _normalize_pull_request,
    "merge_group": _normalize_merge_group,
    "create": _normalize_branch,
    "delete": _normalize_branch,
    "issues": _normalize_issue,
    "workflow_dispatch": _normalize_dispatch,
}


def normalize(raw: RawEvent, *, observed_at: int) -> TriggerEvent:
    """Produce exactly one trigger event for ``raw``.

    Parameters
    ----------
    raw
        Provider-shaped event with its declared event name and activity type.
    observed_at
        Coordinator ingestion sequence number to stamp on the record.

    Returns
    -------
    TriggerEvent
        The canonical record.

    Raises
    ------
    UnrecognizedEventShapeError
        If the class is unsupported or required fields are absent.

    """
    declared = classify(raw)
    return _NORMALIZERS[raw.event](raw, declared, observed_at)
