"""Deterministic provider event builders for coordination tests.

Examples
--------
>>> from tests.helpers.trigger_events import push_event, pull_request_event
>>> push_event(sha="abc123").event
'push'
>>> pull_request_event(number=7, merge_sha="m7").action
'synchronize'

"""

from __future__ import annotations

from ferryman.events.models import RawEvent

HEAD_BRANCH = "feature"
BASE_BRANCH = "main"


def push_event(
    *,
    sha: str,
    ref: str = f"refs/heads/{HEAD_BRANCH}",
    delivery_id: str | None = None,
) -> RawEvent:
    """Build a ``push`` event for ``sha`` on ``ref``."""
    return RawEvent(
        event="push",
        payload={"ref": ref, "after": sha},
        delivery_id=delivery_id,
    )


def pull_request_event(
    *,
    number: int,
    merge_sha: str | None,
    action: str = "synchronize",
    head_sha: str = "head0000",
    head_ref: str = HEAD_BRANCH,
    base_ref: str = BASE_BRANCH,
    base_sha: str = "base0000",
    event: str = "pull_request",
) -> RawEvent:
    """Build a ``pull_request`` (or ``pull_request_target``) event."""
    pull_request: dict[str, object] = {
        "number": number,
        "head": {"ref": head_ref, "sha": head_sha},
        "base": {"ref": base_ref, "sha": base_sha},
    }
    if merge_sha is not None:
        pull_request["merge_commit_sha"] = merge_sha
    return RawEvent(
        event=event,
        action=action,
        payload={"pull_request": pull_request, "after": head_sha},
    )


def merge_group_event(
    *,
    number: int,
    head_sha: str,
    base_ref: str = BASE_BRANCH,
) -> RawEvent:
    """Build a ``merge_group.checks_requested`` event for PR ``number``."""
    head_ref = f"refs/heads/gh-readonly-queue/{base_ref}/pr-{number}-{head_sha}"
    return RawEvent(
        event="merge_group",
        action="checks_requested",
        payload={
            "merge_group": {
                "head_sha": head_sha,
                "head_ref": head_ref,
                "base_ref": f"refs/heads/{base_ref}",
            }
        },
    )


def queue_branch_push(
    *, number: int, head_sha: str, base_ref: str = BASE_BRANCH
) -> RawEvent:
    """Build the push GitHub emits for a merge-queue synthetic branch."""
    return push_event(
        sha=head_sha,
        ref=f"refs/heads/gh-readonly-queue/{base_ref}/pr-{number}-{head_sha}",
    )


def branch_event(
    *, event: str, ref: str, sha: str | None, ref_type: str = "branch"
) -> RawEvent:
    """Build a ``create`` or ``delete`` ref event."""
    return RawEvent(
        event=event,
        payload={"ref": ref, "ref_type": ref_type},
        sha=sha,
    )


def issue_event(*, sha: str | None, default_branch: str = BASE_BRANCH) -> RawEvent:
    """Build an ``issues.opened`` event."""
    return RawEvent(
        event="issues",
        action="opened",
        payload={"repository": {"default_branch": default_branch}},
        sha=sha,
    )


def dispatch_event(*, sha: str | None, ref: str = BASE_BRANCH) -> RawEvent:
    """Build a ``workflow_dispatch`` event."""
    return RawEvent(event="workflow_dispatch", payload={"ref": ref}, sha=sha)
