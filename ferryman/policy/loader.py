"""YAML loader for coordination policy files."""

from __future__ import annotations

from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import PolicyValidationError
from .models import CoordinationPolicy

YAML_VERSION = (1, 2)


def load_policy(path: Path | str) -> CoordinationPolicy:
    """Parse and validate a YAML policy file.

    Raises
    ------
    PolicyValidationError
        If the file cannot be read, is empty, or fails schema validation.

    """
    try:
        loaded = _yaml().load(Path(path).read_text(encoding="utf-8"))
    except (OSError, YAMLError) as exc:
        raise PolicyValidationError([f"failed to parse YAML: {exc}"]) from exc

    if loaded is None:
        raise PolicyValidationError(["policy file is empty"])

    return policy_from_mapping(loaded)


def policy_from_mapping(data: object) -> CoordinationPolicy:
    """Convert already-parsed policy data into a :class:`CoordinationPolicy`."""
    try:
        return msgspec.convert(data, type=CoordinationPolicy)
    except msgspec.ValidationError as exc:
        raise PolicyValidationError([f"schema validation failed: {exc}"]) from exc


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml
