"""Submission and user tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserRow(Base):
    """Contributor account. The pipeline only writes ``reputation``."""

    __tablename__ = "app_user"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    primary_address: Mapped[str | None] = mapped_column(
        String,
        comment="Address on the primary ledger (reward mint destination)",
    )
    secondary_address: Mapped[str | None] = mapped_column(
        String,
        comment="Address on the secondary ledger (reputation relay target)",
    )
    reputation: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Local mirror of secondary-ledger reputation",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class SubmissionRow(Base):
    """Contributed artifact with review, reward and relay bookkeeping."""

    __tablename__ = "submission"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("app_user.id"),
        nullable=False,
    )
    task_id: Mapped[str] = mapped_column(String, nullable=False)
    result_hash: Mapped[str] = mapped_column(String, nullable=False)
    storage_uri: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="PENDING",
        comment="PENDING | APPROVED | REJECTED",
    )
    quality_score: Mapped[int | None] = mapped_column(
        Integer,
        comment="0-100, null until scored",
    )
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSON,
        nullable=False,
        default=dict,
        comment="Contributor metadata plus the embedded quality assessment",
    )

    reward_amount: Mapped[str | None] = mapped_column(
        String,
        comment="Whole-unit decimal string",
    )
    reward_tx_ref: Mapped[str | None] = mapped_column(String)
    reward_error: Mapped[str | None] = mapped_column(
        String,
        comment="Why the reward mint failed; set means manual retry needed",
    )

    approval_tx_ref: Mapped[str | None] = mapped_column(
        String,
        comment="Primary-ledger approval transaction",
    )
    reviewer_id: Mapped[str | None] = mapped_column(String)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    review_claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        comment="Set while an approve or reject is in flight; guards concurrent decisions",
    )

    relay_tx_ref: Mapped[str | None] = mapped_column(
        String,
        comment="Secondary-ledger reputation transaction; completion marker",
    )
    relay_claimed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        comment="Set when a relay job is enqueued; guards duplicate enqueue",
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_submission_status_relay", "status", "relay_tx_ref"),
        Index("ix_submission_user", "user_id"),
    )


user_table = UserRow.__table__
submission_table = SubmissionRow.__table__


__all__ = ["SubmissionRow", "UserRow", "submission_table", "user_table"]
