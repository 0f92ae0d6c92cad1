"""msgspec encoding of run records for executors and the audit store.

Encoded records keep every field of the run and its source event, plus the
derived ``is_protected`` flag and the rendered group key, so an external
consumer can audit or replay a decision without importing ferryman.
"""

from __future__ import annotations

import typing as typ

import msgspec

from .models import RunRecord

type EncodedRun = dict[str, typ.Any]

_DERIVED_EVENT_FIELDS = ("is_protected",)
_DERIVED_RUN_FIELDS = ("group",)


def encode_run(run: RunRecord) -> EncodedRun:
    """Return a JSON-safe mapping describing ``run``."""
    encoded = typ.cast("EncodedRun", msgspec.to_builtins(run))
    encoded["source_event"]["is_protected"] = run.source_event.is_protected
    encoded["group"] = str(run.group_key)
    return encoded


def decode_run(data: EncodedRun) -> RunRecord:
    """Rebuild a :class:`RunRecord` from :func:`encode_run` output.

    Raises
    ------
    msgspec.ValidationError
        If ``data`` does not describe a run record.

    """
    cleaned = {k: v for k, v in data.items() if k not in _DERIVED_RUN_FIELDS}
    event = cleaned.get("source_event")
    if isinstance(event, dict):
        cleaned["source_event"] = {
            k: v for k, v in event.items() if k not in _DERIVED_EVENT_FIELDS
        }
    return msgspec.convert(cleaned, type=RunRecord)
