"""Coordination policy configuration and group key resolution."""

from __future__ import annotations

from .errors import PolicyValidationError, UnresolvableDiscriminantError
from .loader import load_policy, policy_from_mapping
from .models import (
    ClassPolicy,
    ConcurrencyGroupKey,
    CoordinationPolicy,
    DiscriminantField,
    default_policy,
)
from .resolver import discriminant_value, resolve

__all__ = [
    "ClassPolicy",
    "ConcurrencyGroupKey",
    "CoordinationPolicy",
    "DiscriminantField",
    "PolicyValidationError",
    "UnresolvableDiscriminantError",
    "default_policy",
    "discriminant_value",
    "load_policy",
    "policy_from_mapping",
    "resolve",
]
