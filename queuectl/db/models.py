"""
SQLAlchemy database models.
Defines the jobs, dead letter and config tables.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from queuectl.constants import JobState

# JSONB on PostgreSQL, plain JSON text elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form stored in every table."""
    return datetime.now(UTC).replace(tzinfo=None)


def new_job_id() -> str:
    """Generate an id for a job submitted without one."""
    return uuid4().hex


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Job(Base):
    """
    Job model representing one shell command waiting for or under execution.

    Rows only ever hold PENDING or PROCESSING. A job that succeeds is deleted
    and a job that exhausts its retries is moved to the dead_letters table.

    Key constraints:
    - id is client supplied or generated, and upserts replace the whole row
    - worker_id is set while the job is PROCESSING and names its owner
    - next_run_at is the earliest instant the job may be claimed
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        default=new_job_id,
    )
    command: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    state: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=JobState.PENDING.value,
    )

    # Retry tracking
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    max_retries: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    next_run_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )

    last_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    worker_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    __table_args__ = (
        # Claim polling: state = pending AND next_run_at <= now
        Index("ix_jobs_state_next_run", "state", "next_run_at"),
        # Listing and FIFO claim order
        Index("ix_jobs_created_at", "created_at"),
    )

    def snapshot(self) -> dict[str, Any]:
        """Serialize the job for storage inside a DLQ entry."""
        return {
            "id": self.id,
            "command": self.command,
            "state": self.state,
            "attempts": self.attempts,
            "max_retries": self.max_retries,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "next_run_at": _isoformat(self.next_run_at),
            "last_error": self.last_error,
            "worker_id": self.worker_id,
        }

    def __repr__(self) -> str:
        return (
            f"Job(id={self.id}, state={self.state}, "
            f"attempts={self.attempts}/{self.max_retries})"
        )


class DeadLetter(Base):
    """
    A job quarantined after exhausting its retries.

    The same job id may appear more than once: a job restored from the DLQ
    can fail again and be dead-lettered a second time.
    """

    __tablename__ = "dead_letters"

    entry_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    job_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    original: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
    )
    moved_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True,
    )
    reason: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"DeadLetter(job_id={self.job_id}, moved_at={self.moved_at})"


class ConfigEntry(Base):
    """Runtime policy override, keyed by name."""

    __tablename__ = "config"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    value: Mapped[Any] = mapped_column(
        JSONType,
        nullable=True,
    )


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_snapshot_time(value: str | None) -> datetime | None:
    """Inverse of the timestamp encoding used by Job.snapshot()."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
