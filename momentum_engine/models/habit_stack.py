from datetime import datetime, date
from sqlalchemy import Integer, String, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class HabitStackEntry(Base):
    """momentum/habitStack: former focus habits the user keeps doing."""

    __tablename__ = "habit_stack"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    habit_key: Mapped[str] = mapped_column(String(64), nullable=False)
    habit: Mapped[str] = mapped_column(String(128), nullable=False)
    habit_kind: Mapped[str] = mapped_column(String(32), nullable=False)
    target: Mapped[int | None] = mapped_column(Integer, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    moved_at: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
