"""Derive concurrency-group keys from trigger events.

Discriminant rendering keeps the value spaces apart: shas are rendered
verbatim, branch names without their ``refs/heads/`` prefix, pull request
numbers as ``pr-<n>`` and merge-queue entries as
``merge-queue:<base>:pr-<n>``. ``:`` is illegal in git ref names and never
occurs in a sha or a ``pr-<n>`` token, so a merge-queue discriminant cannot
equal any push or pull request discriminant. A push to the synthetic queue
branch therefore never lands in the group of its queue check.
"""

from __future__ import annotations

import typing as typ

from ferryman.events.normalizer import branch_name

from .errors import UnresolvableDiscriminantError
from .models import ConcurrencyGroupKey, DiscriminantField

if typ.TYPE_CHECKING:
    from ferryman.events.models import TriggerEvent

    from .models import CoordinationPolicy


def _non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _pull_request_token(event: TriggerEvent) -> str | None:
    if event.pull_request_number is None:
        return None
    return f"pr-{event.pull_request_number}"


def _merge_queue_entry(event: TriggerEvent) -> str | None:
    base = _non_empty(event.base_ref)
    token = _pull_request_token(event)
    if base is None or token is None:
        return None
    return f"merge-queue:{base}:{token}"


def discriminant_value(event: TriggerEvent, field: DiscriminantField) -> str | None:
    """Render ``field`` of ``event`` as a discriminant, or ``None`` if absent."""
    match field:
        case DiscriminantField.COMMIT_SHA:
            return _non_empty(event.commit_sha)
        case DiscriminantField.REF_NAME:
            ref = _non_empty(event.ref_name)
            return None if ref is None else branch_name(ref)
        case DiscriminantField.HEAD_REF:
            return _non_empty(event.head_ref)
        case DiscriminantField.BASE_REF:
            return _non_empty(event.base_ref)
        case DiscriminantField.PULL_REQUEST_NUMBER:
            return _pull_request_token(event)
        case DiscriminantField.MERGE_QUEUE_ENTRY:
            return _merge_queue_entry(event)


def resolve(event: TriggerEvent, policy: CoordinationPolicy) -> ConcurrencyGroupKey:
    """Return the concurrency-group key for ``event`` under ``policy``.

    Raises
    ------
    UnresolvableDiscriminantError
        If the event class is not configured or the selected field is empty
        for this event.

    """
    entry = policy.for_class(event.event_class)
    value = discriminant_value(event, entry.discriminant)
    if value is None:
        raise UnresolvableDiscriminantError.absent(
            event.event_class, entry.discriminant.value
        )
    return ConcurrencyGroupKey(workflow=policy.workflow, discriminant=value)
