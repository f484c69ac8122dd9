"""
Daily Momentum Calculator.

Pure functions, no store access:

  ratings  ──► grades  ──► daily score (rounded mean, 0..100)
                                │
  account age ──► unlock ceiling┴─► momentum score + message
                                        │
  previous real score ──────────────────┴─► delta + trend

Unlock ramp (first 14 days of the account):
  days 1-3   20, 25, 30
  days 4-7   35, 40, 45, 50
  days 8-14  55, 57, 59, 61, 63, 64, 65
  day 15+    no cap
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from momentum_engine.core.config import settings

# Rating vocabulary → grade.
RATING_GRADES: dict[str, int] = {
    "elite": 100,
    "solid": 80,
    "not-great": 50,
    "off": 0,
}

# Message bands: score < threshold → message.  Last entry is the catch-all.
_NEW_USER_MESSAGES = (
    (40, "Building a foundation"),
    (60, "Finding your rhythm"),
    (80, "Momentum is forming"),
    (None, "Breakthrough progress"),
)
_VETERAN_MESSAGES = (
    (40, "Resetting your pace"),
    (60, "Gaining traction"),
    (80, "Heating up"),
    (None, "On fire"),
)


@dataclass
class DailyMomentum:
    """Everything the calculator derives for one check-in."""
    behavior_grades: list[dict[str, Any]]
    daily_score: int
    momentum_score: int
    momentum_message: str
    momentum_delta: int
    momentum_trend: str
    habit_key: str
    account_age_days: int


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def rating_to_grade(rating: Optional[str]) -> int:
    return RATING_GRADES.get((rating or "").strip().lower(), 0)


def grades_from_ratings(ratings: Mapping[str, str]) -> list[dict[str, Any]]:
    return [{"name": name, "grade": rating_to_grade(r)} for name, r in ratings.items()]


def calculate_daily_score(grades: Optional[Iterable[Any]]) -> int:
    """
    Rounded mean of the grades, clamped to [0, 100].

    Accepts `[{name, grade}]` dicts or bare numbers. Empty or malformed input
    scores 0; this never raises.
    """
    if not grades:
        return 0
    values: list[float] = []
    for item in grades:
        grade = item.get("grade") if isinstance(item, Mapping) else item
        if isinstance(grade, bool) or not isinstance(grade, (int, float)):
            continue
        if math.isnan(grade):
            continue
        values.append(float(grade))
    if not values:
        return 0
    # Round half up, matching how scores are shown to users.
    return _clamp(int(math.floor(sum(values) / len(values) + 0.5)))


def unlock_ceiling(account_age_days: int) -> Optional[int]:
    """Ceiling on momentum for the account's age in days; None once unlocked."""
    age = max(1, account_age_days)
    if age <= 3:
        return settings.RAMP_EARLY_BASE + (age - 1) * settings.RAMP_STEP
    if age <= 7:
        return settings.RAMP_MID_BASE + (age - 4) * settings.RAMP_STEP
    if age <= settings.NEW_USER_DAYS:
        return settings.UNLOCK_RAMP_TABLE[age]
    return None


def momentum_message(score: int, account_age_days: int) -> str:
    bands = _NEW_USER_MESSAGES if account_age_days <= settings.NEW_USER_DAYS else _VETERAN_MESSAGES
    for threshold, message in bands:
        if threshold is None or score < threshold:
            return message
    return bands[-1][1]


def apply_momentum_cap(daily_score: int, account_age_days: int) -> tuple[int, str]:
    ceiling = unlock_ceiling(account_age_days)
    score = daily_score if ceiling is None else min(daily_score, ceiling)
    score = _clamp(score)
    return score, momentum_message(score, account_age_days)


def momentum_trend(score: int, previous_real_score: Optional[int]) -> tuple[int, str]:
    """Delta against the last real check-in; no previous record reads as stable."""
    if previous_real_score is None:
        return 0, "stable"
    delta = score - previous_real_score
    if delta > settings.TREND_DEADBAND:
        return delta, "up"
    if delta < -settings.TREND_DEADBAND:
        return delta, "down"
    return delta, "stable"


def calculate_daily_momentum(
    grades: list[dict[str, Any]],
    habit_key: str,
    account_age_days: int,
    previous_real_score: Optional[int] = None,
) -> DailyMomentum:
    daily_score = calculate_daily_score(grades)
    score, message = apply_momentum_cap(daily_score, account_age_days)
    delta, trend = momentum_trend(score, previous_real_score)
    return DailyMomentum(
        behavior_grades=list(grades),
        daily_score=daily_score,
        momentum_score=score,
        momentum_message=message,
        momentum_delta=delta,
        momentum_trend=trend,
        habit_key=habit_key,
        account_age_days=max(1, account_age_days),
    )
