from typing import Optional
from pydantic import Field

from momentum_engine.schemas.common import CamelModel, Toast


class WeeklyCoachingRequest(CamelModel):
    week_id: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-W\d{2}$",
        description="ISO week id (e.g. 2026-W07). Defaults to the current week.",
    )


class WeeklyCoachingResponse(CamelModel):
    week_id: str
    triggered: bool
    toast: Toast
