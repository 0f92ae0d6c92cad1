"""Command-line linting and schema export for coordination policies."""

from __future__ import annotations

import argparse
import json
import typing as typ
from pathlib import Path

import msgspec

from .errors import PolicyValidationError
from .loader import load_policy
from .models import CoordinationPolicy

SCHEMA_ID = "https://ferryman.example/schemas/policy.json"


def build_policy_schema() -> dict[str, typ.Any]:
    """Return the JSON Schema for policy files with ``$id`` set."""
    schema = msgspec.json.schema(CoordinationPolicy)
    schema["$id"] = SCHEMA_ID
    return schema


def write_policy_schema(path: Path) -> Path:
    """Write the policy JSON Schema to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(build_policy_schema(), indent=2), encoding="utf-8")
    return path


def main(argv: list[str] | None = None) -> int:
    """Validate a policy file and optionally export JSON artefacts.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        0 when the policy is valid, 1 otherwise.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("policy", type=Path, help="YAML policy file to validate")
    parser.add_argument(
        "--schema-out",
        type=Path,
        default=None,
        help="Optional path to write the policy JSON Schema",
    )
    parser.add_argument(
        "--json-out",
        type=Path,
        default=None,
        help="Optional path to write the validated policy as JSON",
    )
    args = parser.parse_args(argv)

    policy_path: Path = args.policy
    try:
        policy = load_policy(policy_path)
    except PolicyValidationError as exc:
        print(f"Policy validation failed for {policy_path}:")
        for issue in exc.issues:
            print(f"  - {issue}")
        return 1

    if args.schema_out:
        write_policy_schema(args.schema_out)

    if args.json_out:
        args.json_out.write_bytes(msgspec.json.encode(policy))

    protected = sorted(
        event_class.value
        for event_class in policy.classes
        if policy.is_protected(event_class)
    )
    print(
        f"policy {policy_path} is valid "
        f"(workflow {policy.workflow!r} / {len(policy.classes)} event classes / "
        f"protected: {', '.join(protected) or 'none'})"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
