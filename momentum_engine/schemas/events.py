"""
Habit-event timeline schemas.

GET /users/{email}/habits/events → HabitEventListResponse
"""
from typing import Any, Optional
from pydantic import Field

from momentum_engine.schemas.common import CamelModel


class HabitEventResponse(CamelModel):
    id: int
    event_type: str = Field(
        description=(
            '"level_up" | "moved_to_stack" | "new_primary" | "streak_saver_earned" | '
            '"streak_saver_used" | "commitment_complete"'
        )
    )
    date: str
    habit_key: Optional[str] = None
    description: str
    metadata: Optional[dict[str, Any]] = Field(
        default=None,
        description="Context specific to each event_type.",
    )
    created_at: str


class HabitEventListResponse(CamelModel):
    total: int
    items: list[HabitEventResponse]
