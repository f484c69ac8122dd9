"""
Commitment: momentum/commitment, the rolling 7-day contract.

One row per user. Opening a new contract overwrites the row in place, so an
expired commitment is always fully replaced.

status values (stored):
  "offered"             : suggested habit shown, no decision yet
  "accepted"            : running; expires_at = accepted_at + 7 days
  "declined"            : transient, between decline and alternative offer
  "alternative_offered" : smaller / different habit offered after a decline
  "terminal"            : declined with reason only, no alternative
  "completed"           : window finished and celebrated

"active" / "expired" are derived from expires_at at read time.
"""
import enum
from datetime import datetime, date
from sqlalchemy import (
    Boolean, Date, DateTime, Enum, ForeignKey, Integer, String, Text, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class CommitmentStatus(str, enum.Enum):
    offered = "offered"
    accepted = "accepted"
    declined = "declined"
    alternative_offered = "alternative_offered"
    terminal = "terminal"
    completed = "completed"


class Commitment(Base):
    __tablename__ = "commitments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[CommitmentStatus] = mapped_column(
        Enum(CommitmentStatus, name="commitment_status_enum"),
        nullable=False,
        default=CommitmentStatus.offered,
    )
    habit_offered: Mapped[str] = mapped_column(String(128), nullable=False)
    habit_key: Mapped[str] = mapped_column(String(64), nullable=False)
    habit_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accepted_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    expires_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    alternative_offered: Mapped[str | None] = mapped_column(String(128), nullable=True)
    alternative_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    alternative_kind: Mapped[str | None] = mapped_column(String(32), nullable=True)
    alternative_target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    alternative_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    decline_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    celebrated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    offered_at: Mapped[date] = mapped_column(Date, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
