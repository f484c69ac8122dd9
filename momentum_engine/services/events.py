"""
Habit-event timeline.

Append-only log of progression milestones per user. Events are written by
the services that cause them (level-up, streak savers, habit stack moves,
commitment completion) inside the caller's transaction; nothing here
commits.
"""
from __future__ import annotations

import json
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from momentum_engine.core.config import settings
from momentum_engine.models.habit_event import HabitEvent
from momentum_engine.models.user import User


class EventType:
    LEVEL_UP            = "level_up"
    MOVED_TO_STACK      = "moved_to_stack"
    NEW_PRIMARY         = "new_primary"
    STREAK_SAVER_EARNED = "streak_saver_earned"
    STREAK_SAVER_USED   = "streak_saver_used"
    COMMITMENT_COMPLETE = "commitment_complete"

    ALL = (
        LEVEL_UP, MOVED_TO_STACK, NEW_PRIMARY,
        STREAK_SAVER_EARNED, STREAK_SAVER_USED, COMMITMENT_COMPLETE,
    )


def record_event(
    db: Session,
    user: User,
    event_type: str,
    day: date,
    habit_key: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
) -> HabitEvent:
    event = HabitEvent(
        user_id=user.id,
        event_type=event_type,
        date=day,
        habit_key=habit_key,
        event_metadata=json.dumps(meta, default=str) if meta else None,
    )
    db.add(event)
    return event


def event_metadata(event: HabitEvent) -> dict[str, Any]:
    if not event.event_metadata:
        return {}
    try:
        return json.loads(event.event_metadata)
    except (ValueError, TypeError):
        return {}


def describe_event(event: HabitEvent) -> str:
    """Human-readable line for the history timeline."""
    meta = event_metadata(event)
    if event.event_type == EventType.LEVEL_UP:
        return f"Leveled up to {meta.get('toTarget', '?')} min walk"
    if event.event_type == EventType.MOVED_TO_STACK:
        return f"Moved {meta.get('habitName') or 'habit'} to stack"
    if event.event_type == EventType.STREAK_SAVER_EARNED:
        return (
            f"Earned streak saver "
            f"({meta.get('saversRemaining', 0)}/{settings.MAX_STREAK_SAVERS})"
        )
    if event.event_type == EventType.STREAK_SAVER_USED:
        return f"Used streak saver to maintain {meta.get('streakLength', 0)}-day streak"
    if event.event_type == EventType.NEW_PRIMARY:
        return f"Started {meta.get('habitName') or 'a new habit'} as primary focus"
    if event.event_type == EventType.COMMITMENT_COMPLETE:
        return "Completed a 7-day commitment"
    return "Habit event"


def list_events(
    db: Session,
    user: User,
    event_type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[HabitEvent]]:
    """Events newest first, with the unpaginated total."""
    q = db.query(HabitEvent).filter(HabitEvent.user_id == user.id)
    if event_type:
        q = q.filter(HabitEvent.event_type == event_type)
    total = q.count()
    items = (
        q.order_by(HabitEvent.date.desc(), HabitEvent.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return total, items
