"""
Reward Priority Resolver.

Runs once per check-in, after the day's record and streak fields are known.
Rules are (event, predicate) pairs evaluated top to bottom; the first match
fires and nothing else does.

  1. commitment_complete  accepted contract reached expiresAt, not celebrated
  2. return_from_break    >= 7 days since the last real check-in
  3. milestone_100        lifetime real check-ins == 100
  4. milestone_50         lifetime real check-ins == 50
  5. streak_30 / 21 / 7 / 3
  6. perfect_day          every foundation solid/elite + normal energy
                          balance + structured meals + primary done

`level_up` is not in the list; accepting a level-up returns it directly.
No match → `checkin_saved`.

Marking the commitment celebrated is the only state this module changes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Optional

from sqlalchemy.orm import Session

from momentum_engine.core.config import settings
from momentum_engine.models.commitment import Commitment, CommitmentStatus
from momentum_engine.models.user import User
from momentum_engine.services.events import EventType, record_event
from momentum_engine.services.habits import (
    BEHAVIOR_HYDRATION,
    BEHAVIOR_MOVEMENT,
    BEHAVIOR_PROTEIN,
    BEHAVIOR_SLEEP,
    is_satisfied,
    rating_for,
)

logger = logging.getLogger(__name__)


class RewardEvent:
    COMMITMENT_COMPLETE = "commitment_complete"
    RETURN_FROM_BREAK   = "return_from_break"
    MILESTONE_100       = "milestone_100"
    MILESTONE_50        = "milestone_50"
    STREAK_30           = "streak_30"
    STREAK_21           = "streak_21"
    STREAK_7            = "streak_7"
    STREAK_3            = "streak_3"
    PERFECT_DAY         = "perfect_day"
    LEVEL_UP            = "level_up"
    CHECKIN_SAVED       = "checkin_saved"


_FOUNDATIONS = (BEHAVIOR_PROTEIN, BEHAVIOR_HYDRATION, BEHAVIOR_SLEEP, BEHAVIOR_MOVEMENT)


@dataclass
class RewardContext:
    today: date
    current_streak: int
    total_real_check_ins: int
    primary_done: bool
    commitment: Optional[Commitment] = None
    days_since_last_real: Optional[int] = None
    ratings: dict[str, str] = field(default_factory=dict)
    energy_balance: Optional[str] = None
    eating_pattern: Optional[str] = None


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _commitment_complete(ctx: RewardContext) -> bool:
    c = ctx.commitment
    return (
        c is not None
        and c.status == CommitmentStatus.accepted
        and c.expires_at is not None
        and c.expires_at <= ctx.today
        and not c.celebrated
    )


def _return_from_break(ctx: RewardContext) -> bool:
    return (
        ctx.days_since_last_real is not None
        and ctx.days_since_last_real >= settings.RETURN_FROM_BREAK_DAYS
    )


def _perfect_day(ctx: RewardContext) -> bool:
    foundations = all(is_satisfied(rating_for(ctx.ratings, b)) for b in _FOUNDATIONS)
    return (
        foundations
        and ctx.energy_balance == "normal"
        and ctx.eating_pattern == "meals"
        and ctx.primary_done
    )


def _streak_is(n: int) -> Callable[[RewardContext], bool]:
    return lambda ctx: ctx.current_streak == n


def _lifetime_is(n: int) -> Callable[[RewardContext], bool]:
    return lambda ctx: ctx.total_real_check_ins == n


REWARD_RULES: list[tuple[str, Callable[[RewardContext], bool]]] = [
    (RewardEvent.COMMITMENT_COMPLETE, _commitment_complete),
    (RewardEvent.RETURN_FROM_BREAK,   _return_from_break),
    (RewardEvent.MILESTONE_100,       _lifetime_is(100)),
    (RewardEvent.MILESTONE_50,        _lifetime_is(50)),
    (RewardEvent.STREAK_30,           _streak_is(30)),
    (RewardEvent.STREAK_21,           _streak_is(21)),
    (RewardEvent.STREAK_7,            _streak_is(7)),
    (RewardEvent.STREAK_3,            _streak_is(3)),
    (RewardEvent.PERFECT_DAY,         _perfect_day),
]


def resolve_reward(ctx: RewardContext) -> Optional[str]:
    """First matching event, or None."""
    for event, predicate in REWARD_RULES:
        if predicate(ctx):
            return event
    return None


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

_PAYLOADS: dict[str, dict] = {
    RewardEvent.CHECKIN_SAVED: {
        "animation": "pulse", "intensity": "small",
        "text": "You showed up today!",
    },
    RewardEvent.STREAK_3: {
        "animation": "confetti", "intensity": "small",
        "text": "Three days in a row. Very nice, momentum is building.",
    },
    RewardEvent.STREAK_7: {
        "animation": "hero", "intensity": "medium",
        "text": "One week straight? That's called consistency. Great job!",
    },
    RewardEvent.RETURN_FROM_BREAK: {
        "animation": "hero", "intensity": "medium",
        "text": "Nice job, you're back on track. You got this!",
    },
    RewardEvent.LEVEL_UP: {
        "animation": "burst", "intensity": "large",
        "text": "You're expanding your capacity and stepping forward. Good stuff!",
    },
    RewardEvent.COMMITMENT_COMPLETE: {
        "animation": "hero", "intensity": "large",
        "text": "Seven days, boom! You did what you said you'd do, be proud of yourself.",
        "shareable": True,
    },
    RewardEvent.STREAK_21: {
        "animation": "hero", "intensity": "large",
        "text": "21 days! You're in the zone now, keep up the great work!",
    },
    RewardEvent.STREAK_30: {
        "animation": "hero", "intensity": "large",
        "text": "30 day milestone. This is who you are now. Amazing execution!",
        "shareable": True,
    },
    RewardEvent.MILESTONE_50: {
        "animation": "hero", "intensity": "large",
        "text": "You reached 50 check-ins. This is a big accomplishment!",
        "shareable": True,
    },
    RewardEvent.MILESTONE_100: {
        "animation": "hero", "intensity": "large",
        "text": "You reached 100 check-ins. This is a major milestone. Congrats!",
        "shareable": True,
    },
    RewardEvent.PERFECT_DAY: {
        "animation": "fireworks", "intensity": "large",
        "text": "Perfect day. All foundations + primary. This is who you're becoming.",
        "shareable": True,
    },
}


def reward_payload(event: str) -> dict:
    payload = _PAYLOADS.get(event, {"animation": "none", "intensity": "small", "text": ""})
    return {"event": event, "shareable": False, **payload}


# ---------------------------------------------------------------------------
# The one persisted effect
# ---------------------------------------------------------------------------

def apply_reward(
    db: Session,
    user: User,
    event: Optional[str],
    commitment: Optional[Commitment],
    today: date,
) -> dict:
    """Payload for the resolved event; celebrates the commitment when it fired."""
    if event == RewardEvent.COMMITMENT_COMPLETE and commitment is not None:
        commitment.celebrated = True
        commitment.status = CommitmentStatus.completed
        record_event(
            db, user, EventType.COMMITMENT_COMPLETE, today,
            habit_key=commitment.habit_key,
            meta={"habitName": commitment.habit_offered, "acceptedAt": commitment.accepted_at},
        )
        logger.info("Commitment completed for %s (%s)", user.email, commitment.habit_key)
    return reward_payload(event or RewardEvent.CHECKIN_SAVED)
