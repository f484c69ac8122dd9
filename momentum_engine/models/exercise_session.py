from datetime import datetime, date
from sqlalchemy import Integer, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class ExerciseSession(Base):
    """sessions/{id}: a logged movement session, read to derive exerciseCompleted."""

    __tablename__ = "exercise_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    duration_min: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
