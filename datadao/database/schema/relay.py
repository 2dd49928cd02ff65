"""Durable relay job queue table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class RelayJobRow(Base):
    """One attempt-tracked relay job per enqueue.

    At most one queued/active job may exist per submission (partial unique
    index), which gives queue-level dedup on top of the submission claim.
    """

    __tablename__ = "relay_job"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    submission_id: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="queued",
        comment="queued | active | completed | failed",
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="Earliest time the job may run (backoff)",
    )
    last_error: Mapped[str | None] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_relay_job_status_available", "status", "available_at"),
        Index(
            "uq_relay_job_open",
            "submission_id",
            unique=True,
            sqlite_where=text("status IN ('queued', 'active')"),
            postgresql_where=text("status IN ('queued', 'active')"),
        ),
    )


relay_job_table = RelayJobRow.__table__


__all__ = ["RelayJobRow", "relay_job_table"]
