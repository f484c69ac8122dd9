"""
Focus, commitment, level-up and habit-stack schemas.
"""
from typing import Literal, Optional

from pydantic import Field

from momentum_engine.schemas.common import CamelModel, Toast
from momentum_engine.schemas.momentum import LevelUpDecisionResponse, RewardResponse


class FocusResponse(CamelModel):
    habit_key: str
    habit: str
    habit_kind: str = Field(
        description='"movement" | "hydration" | "protein" | "sleep" | "eating_pattern" | "custom"'
    )
    level: int
    target: Optional[int] = Field(default=None, description="Minutes per day (movement only).")
    started_at: str
    last_level_up_at: Optional[str] = None
    consecutive_days: int
    last_proven_target: Optional[int] = None


class SelectFocusRequest(CamelModel):
    habit_key: str = Field(min_length=1, max_length=64, examples=["walk_10min", "hydration"])
    label: Optional[str] = Field(default=None, max_length=128)


class FocusEnvelope(CamelModel):
    focus: Optional[FocusResponse] = None
    toast: Toast


class CommitmentResponse(CamelModel):
    state: str = Field(
        description=(
            '"none" | "offered" | "active" | "expired" | "declined" | '
            '"alternative_offered" | "terminal" | "completed"'
        )
    )
    show_commitment: bool
    habit_offered: Optional[str] = None
    habit_key: Optional[str] = None
    habit_kind: Optional[str] = None
    target: Optional[int] = None
    accepted: bool = False
    accepted_at: Optional[str] = None
    expires_at: Optional[str] = None
    alternative_offered: Optional[str] = None
    alternative_target: Optional[int] = None
    alternative_accepted: bool = False
    decline_reason: Optional[str] = None
    celebrated: bool = False


class CommitmentEnvelope(CamelModel):
    commitment: CommitmentResponse
    toast: Toast


class DeclineCommitmentRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    want_alternative: bool = False
    alternative_habit: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Habit key to offer instead; defaults to a smaller movement target.",
    )


class AcceptLevelUpRequest(CamelModel):
    new_target: Optional[int] = Field(
        default=None, description="Explicit minutes; defaults to the next ladder rung."
    )


class DeclineLevelUpRequest(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    next_step: Literal["stick_current", "increase_some_days", "try_different"]


class AdjustTargetRequest(CamelModel):
    minutes: int = Field(gt=0)


class LevelUpPromptResponse(CamelModel):
    pending: bool
    last_shown: Optional[str] = None
    times_offered: int
    times_accepted: int
    times_declined: int
    decline_reasons: list[dict]


class LevelUpEligibilityResponse(CamelModel):
    decision: LevelUpDecisionResponse
    prompt: Optional[LevelUpPromptResponse] = None
    toast: Toast


class LevelUpOutcomeResponse(CamelModel):
    focus: Optional[FocusResponse] = None
    commitment: Optional[CommitmentResponse] = None
    reward: Optional[RewardResponse] = None
    prompt: Optional[LevelUpPromptResponse] = None
    moved_to_stack: Optional["HabitStackEntryResponse"] = None
    toast: Toast


class HabitStackEntryResponse(CamelModel):
    position: int
    habit_key: str
    habit: str
    habit_kind: str
    target: Optional[int] = None
    level: int
    moved_at: str


class HabitStackResponse(CamelModel):
    total: int
    items: list[HabitStackEntryResponse]


LevelUpOutcomeResponse.model_rebuild()
