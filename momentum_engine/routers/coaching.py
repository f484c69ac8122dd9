"""
Weekly coaching router.

POST /users/{email}/coaching/weekly   ask the narrative generator for this week's story
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from momentum_engine.db.base import get_db
from momentum_engine.schemas.coaching import WeeklyCoachingRequest, WeeklyCoachingResponse
from momentum_engine.schemas.common import ErrorResponse, success_toast
from momentum_engine.services.users import get_user
from momentum_engine.services.weekly_coaching import trigger_weekly_coaching

router = APIRouter(prefix="/users/{email}/coaching", tags=["coaching"])


@router.post(
    "/weekly",
    response_model=WeeklyCoachingResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger weekly coaching generation",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown user."},
        502: {"model": ErrorResponse, "description": "Narrative generator failed."},
    },
)
def trigger_weekly(
    email: str,
    payload: Optional[WeeklyCoachingRequest] = None,
    db: Session = Depends(get_db),
):
    """Fire-and-check: a non-2xx answer from the generator is a 502, never retried."""
    user = get_user(db, email)
    week_id = trigger_weekly_coaching(user.email, payload.week_id if payload else None)
    return WeeklyCoachingResponse(
        week_id=week_id,
        triggered=True,
        toast=success_toast("Your weekly coaching is on its way."),
    )
