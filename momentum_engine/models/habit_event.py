"""
HabitEvent: habitEvents/{id}, the per-user progression timeline.

Append-only. event_type values (see services/events.py):
  "level_up", "moved_to_stack", "new_primary", "streak_saver_earned",
  "streak_saver_used", "commitment_complete"

event_metadata: JSON-encoded dict stored as Text.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class HabitEvent(Base):
    __tablename__ = "habit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    habit_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    event_metadata: Mapped[str | None] = mapped_column(
        "event_metadata", Text, nullable=True,
        comment="JSON-encoded dict with context specific to each event_type",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
