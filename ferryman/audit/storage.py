"""Persistence model for evicted run records."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ferryman.audit.errors import TimezoneAwareRequiredError
from ferryman.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for audit models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError.for_column()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class RunAudit(Base):
    """Append-only copy of a run record taken when it leaves the registry.

    The scalar columns support querying; ``record`` holds the full encoded
    run, source event included, and is what readers decode.
    """

    __tablename__ = "run_audit"
    __table_args__ = (
        Index("ix_run_audit_group_created", "group_key", "created_at"),
        Index("ix_run_audit_commit_sha", "commit_sha"),
    )

    run_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    group_key: Mapped[str] = mapped_column(String(512))
    event_class: Mapped[str] = mapped_column(String(64))
    commit_sha: Mapped[str] = mapped_column(String(64))
    state: Mapped[str] = mapped_column(String(16))
    reason: Mapped[str | None] = mapped_column(String(32), default=None)
    created_at: Mapped[int] = mapped_column(Integer)
    observed_at: Mapped[int] = mapped_column(Integer)
    dispatched_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    finished_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    recorded_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    record: Mapped[dict[str, typ.Any]] = mapped_column(JSON)


async def init_audit_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
