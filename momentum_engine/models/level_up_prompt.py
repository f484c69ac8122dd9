import json
from datetime import datetime, date
from sqlalchemy import Boolean, Integer, Text, DateTime, Date, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from momentum_engine.db.base import Base


class LevelUpPrompt(Base):
    """
    momentum/levelUpPrompt: prompt history for the level-up offer.

    last_shown drives the 7-day prompt cooldown. decline_reasons is a
    JSON-encoded list of {date, reason, nextStep}.
    """

    __tablename__ = "level_up_prompts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_shown: Mapped[date | None] = mapped_column(Date, nullable=True)
    times_offered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    times_accepted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    times_declined: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    decline_reasons_json: Mapped[str] = mapped_column(
        "decline_reasons", Text, nullable=False, default="[]"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def decline_reasons(self) -> list[dict]:
        return json.loads(self.decline_reasons_json or "[]")

    @decline_reasons.setter
    def decline_reasons(self, value: list[dict]) -> None:
        self.decline_reasons_json = json.dumps(value)
