from datetime import datetime, date
from sqlalchemy import Integer, String, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class CurrentFocus(Base):
    """
    momentum/currentFocus: the single habit a user is building.

    habit_kind + target hold the resolved habit variant
    (see services/habits.py); habit_key is kept for display and for
    matching `primary.habitKey` on daily records.
    """

    __tablename__ = "current_focus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    habit_key: Mapped[str] = mapped_column(String(64), nullable=False)
    habit: Mapped[str] = mapped_column(String(128), nullable=False)
    habit_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[date] = mapped_column(Date, nullable=False)
    last_level_up_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    consecutive_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_proven_target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
