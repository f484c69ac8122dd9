"""
DailyMomentumRecord: momentum/{YYYY-MM-DD}.

One row per (user, calendar date). Written once at check-in (or synthesized
by gap detection) and read-only afterwards; `celebrated` is the only column
updated later.

checkin_type values:
  "real"         : user-submitted check-in
  "gap_fill"     : synthesized for a day the user never checked in
  "streak_saver" : a gap day bridged by spending a banked streak saver

behavior_grades / behavior_ratings: JSON-encoded, stored as Text.
"""
import enum
import json
from datetime import datetime, date
from typing import Any

from sqlalchemy import (
    Boolean, Date, DateTime, Enum, ForeignKey, Integer, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class CheckinType(str, enum.Enum):
    real = "real"
    gap_fill = "gap_fill"
    streak_saver = "streak_saver"


class MomentumTrend(str, enum.Enum):
    up = "up"
    down = "down"
    stable = "stable"


class DailyMomentumRecord(Base):
    __tablename__ = "daily_momentum"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_momentum_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    account_age_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkin_type: Mapped[CheckinType] = mapped_column(
        Enum(CheckinType, name="checkin_type_enum"),
        nullable=False,
        default=CheckinType.real,
    )
    missed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    behavior_grades_json: Mapped[str] = mapped_column(
        "behavior_grades", Text, nullable=False, default="[]"
    )
    behavior_ratings_json: Mapped[str] = mapped_column(
        "behavior_ratings", Text, nullable=False, default="{}"
    )
    energy_balance: Mapped[str | None] = mapped_column(String(16), nullable=True)
    eating_pattern: Mapped[str | None] = mapped_column(String(16), nullable=True)

    daily_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    momentum_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    momentum_delta: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    momentum_trend: Mapped[MomentumTrend] = mapped_column(
        Enum(MomentumTrend, name="momentum_trend_enum"),
        nullable=False,
        default=MomentumTrend.stable,
    )
    momentum_message: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    primary_habit_key: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    primary_done: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lifetime_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    streak_savers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_real_check_ins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    exercise_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    exercise_target_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    celebrated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # --- JSON accessors ---

    @property
    def behavior_grades(self) -> list[dict[str, Any]]:
        return json.loads(self.behavior_grades_json or "[]")

    @behavior_grades.setter
    def behavior_grades(self, value: list[dict[str, Any]]) -> None:
        self.behavior_grades_json = json.dumps(value)

    @property
    def behavior_ratings(self) -> dict[str, str]:
        return json.loads(self.behavior_ratings_json or "{}")

    @behavior_ratings.setter
    def behavior_ratings(self, value: dict[str, str]) -> None:
        self.behavior_ratings_json = json.dumps(value)

    @property
    def is_real(self) -> bool:
        return self.checkin_type == CheckinType.real

    @property
    def date_key(self) -> str:
        return self.date.isoformat()
