"""
Habit history router.

GET /users/{email}/habits/stack   habits moved off the focus slot, oldest first
GET /users/{email}/habits/events  progression timeline, newest first
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from momentum_engine.db.base import get_db
from momentum_engine.models.habit_event import HabitEvent
from momentum_engine.routers.progression import stack_entry_to_response
from momentum_engine.schemas.common import ErrorResponse
from momentum_engine.schemas.events import HabitEventListResponse, HabitEventResponse
from momentum_engine.schemas.progression import HabitStackResponse
from momentum_engine.services import progression
from momentum_engine.services.events import EventType, describe_event, event_metadata, list_events
from momentum_engine.services.users import get_user

router = APIRouter(prefix="/users/{email}/habits", tags=["habits"])


def _event_to_response(e: HabitEvent) -> HabitEventResponse:
    return HabitEventResponse(
        id=e.id,
        event_type=e.event_type,
        date=e.date.isoformat(),
        habit_key=e.habit_key,
        description=describe_event(e),
        metadata=event_metadata(e) or None,
        created_at=e.created_at.isoformat() if e.created_at else "",
    )


@router.get(
    "/stack",
    response_model=HabitStackResponse,
    summary="Habits moved to the stack",
    responses={404: {"model": ErrorResponse, "description": "Unknown user."}},
)
def get_stack(email: str, db: Session = Depends(get_db)):
    user = get_user(db, email)
    entries = progression.list_habit_stack(db, user)
    return HabitStackResponse(
        total=len(entries),
        items=[stack_entry_to_response(e) for e in entries],
    )


@router.get(
    "/events",
    response_model=HabitEventListResponse,
    summary="Habit progression timeline",
    responses={
        404: {"model": ErrorResponse, "description": "Unknown user."},
        422: {"model": ErrorResponse, "description": "Unknown event type."},
    },
)
def get_events(
    email: str,
    event_type: Optional[str] = Query(
        default=None,
        description=f"Filter by type: {', '.join(EventType.ALL)}",
        pattern="^(" + "|".join(EventType.ALL) + ")$",
    ),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    user = get_user(db, email)
    total, items = list_events(db, user, event_type, limit, offset)
    return HabitEventListResponse(total=total, items=[_event_to_response(e) for e in items])
