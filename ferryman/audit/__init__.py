"""Audit trail of runs evicted from the registry."""

from __future__ import annotations

from .errors import TimezoneAwareRequiredError
from .storage import RunAudit, init_audit_storage
from .writer import RunAuditWriter

__all__ = [
    "RunAudit",
    "RunAuditWriter",
    "TimezoneAwareRequiredError",
    "init_audit_storage",
]
