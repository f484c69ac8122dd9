"""
Check-in and momentum schemas.

POST /users/{email}/momentum/checkins  ← CheckinRequest → CheckinResponse
GET  /users/{email}/momentum/{date}    → DailyMomentumResponse
GET  /users/{email}/momentum/history   → MomentumHistoryResponse
GET  /users/{email}/momentum/summary   → MomentumSummaryResponse
POST /users/{email}/momentum/gaps      → GapReportResponse
POST /users/{email}/sessions           ← ExerciseSessionRequest → ExerciseSessionResponse
"""
import datetime as dt
from typing import Literal, Optional

from pydantic import Field, field_validator

from momentum_engine.schemas.common import CamelModel, Toast

Rating = Literal["elite", "solid", "not-great", "off"]


class CheckinRequest(CamelModel):
    day: Optional[dt.date] = Field(
        default=None,
        alias="date",
        description="Local calendar date (YYYY-MM-DD). Defaults to today.",
    )
    behavior_ratings: dict[str, Rating] = Field(
        default_factory=dict,
        description='Ordered {behavior: rating}, e.g. {"Protein": "solid"}.',
        examples=[{"Protein": "solid", "Hydration": "elite", "Sleep": "not-great"}],
    )
    energy_balance: Optional[Literal["light", "normal", "heavy", "indulgent"]] = None
    eating_pattern: Optional[Literal["meals", "mixed", "grazing", "none"]] = None
    exercise_declared: bool = Field(
        default=False, description="User says they completed today's movement."
    )
    primary_declared: bool = Field(
        default=False, description="User marks a non-movement focus habit as done."
    )
    habit_key: Optional[str] = Field(
        default=None,
        description="Focus habit for a first check-in. Ignored once a focus exists.",
        examples=["walk_10min"],
    )
    habit_label: Optional[str] = None
    note: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("behavior_ratings")
    @classmethod
    def names_not_blank(cls, v: dict[str, str]) -> dict[str, str]:
        if any(not name.strip() for name in v):
            raise ValueError("behavior names must not be blank")
        return v


class BehaviorGrade(CamelModel):
    name: str
    grade: int


class PrimaryHabit(CamelModel):
    habit_key: str
    done: bool


class DailyMomentumResponse(CamelModel):
    date: str
    account_age_days: int
    checkin_type: str = Field(description='"real" | "gap_fill" | "streak_saver"')
    missed: bool
    behavior_grades: list[BehaviorGrade]
    behavior_ratings: dict[str, str]
    daily_score: int
    momentum_score: int
    momentum_delta: int
    momentum_trend: str = Field(description='"up" | "down" | "stable"')
    momentum_message: str
    primary: PrimaryHabit
    current_streak: int
    lifetime_streak: int
    streak_savers: int
    total_real_check_ins: int
    exercise_completed: bool
    exercise_target_minutes: Optional[int] = None
    energy_balance: Optional[str] = None
    eating_pattern: Optional[str] = None
    note: Optional[str] = None
    celebrated: bool
    created_at: str


class RewardResponse(CamelModel):
    event: str = Field(description="Reward event, or \"checkin_saved\" when none fired.")
    animation: str
    intensity: str
    text: str
    shareable: bool = False


class GapReportResponse(CamelModel):
    had_gap: bool
    days_missed: int
    last_checkin_date: Optional[str] = None
    frozen_momentum: int
    should_reset: bool
    filled_dates: list[str] = Field(default_factory=list)
    saver_used: bool = False
    saver_pending: bool = False
    message: str = ""
    toast: Optional[Toast] = None


class LevelUpDecisionResponse(CamelModel):
    eligible: bool
    reason: str = Field(
        description=(
            '"eligible" | "account_too_new" | "cooldown" | "no_recent_data" | '
            '"insufficient_hits" | "no_next_level" | "no_focus"'
        )
    )
    days_hit: int
    days_remaining: int
    next_target: Optional[int] = None
    pending: bool


class CheckinResponse(CamelModel):
    record: DailyMomentumResponse
    reward: RewardResponse
    gaps: GapReportResponse
    level_up: LevelUpDecisionResponse
    streak_message: str
    toast: Toast


class MomentumHistoryResponse(CamelModel):
    total: int
    items: list[DailyMomentumResponse]


class MomentumSummaryResponse(CamelModel):
    date: str
    checked_in_today: bool
    today: Optional[DailyMomentumResponse] = None
    current_streak: int
    streak_message: str
    lifetime_check_ins: int
    consistency: int = Field(description="Rolling consistency %, 0 before day 7.")
    account_age_days: int
    show_commitment: bool
    commitment_state: str
    missed_message: str = ""
    anchor_missing: bool = False
    toast: Optional[Toast] = None


class ExerciseSessionRequest(CamelModel):
    day: Optional[dt.date] = Field(default=None, alias="date")
    duration_min: int = Field(ge=0, le=24 * 60)


class ExerciseSessionResponse(CamelModel):
    id: int
    date: str
    duration_min: int
    toast: Toast


class ConsistencyResponse(CamelModel):
    consistency: int
    account_age_days: int
    current_streak: int
    toast: Toast
