"""
Streak & Consistency Tracker.

Streaks
-------
A real check-in continues the streak when the previous calendar day holds a
`real` or `streak_saver` record; otherwise the streak restarts at 1.
Every 7th consecutive day banks one streak saver (max 3).

Gap detection
-------------
Before anything is computed for "today", every calendar day between the
last real record and today with no record is synthesized as a `gap_fill`
row (momentumScore=0, missed=true), so windowed calculations always see a
contiguous calendar.

When exactly one day was missed and the user holds a saver, that day is
written as a `streak_saver` row instead: the streak is carried through it
and one saver is spent. Longer gaps are never bridged. The saver is spent
only by the real check-in that closes the gap; a plain gap scan
(`hold_saver=True`) leaves that day unwritten so a second missed day still
turns it into an ordinary gap.

Consistency
-----------
  window size = min(effective age, 30)
  effective age = account age, minus one when today has no real record yet
  window end = today, or yesterday when today has no real record yet
  consistency % = round(100 * real records in window / window size)
Reported as 0 while the account is younger than 7 days.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from momentum_engine.core.clock import date_key, date_range, days_between
from momentum_engine.core.config import settings
from momentum_engine.models.daily_momentum import (
    CheckinType,
    DailyMomentumRecord,
    MomentumTrend,
)
from momentum_engine.models.user import User
from momentum_engine.services.events import EventType, record_event
from momentum_engine.services.users import first_checkin_date, require_first_checkin_date

logger = logging.getLogger(__name__)

_STREAK_TYPES = (CheckinType.real, CheckinType.streak_saver)

MISSED_CHECKIN_MESSAGE = "Missed check-in"
STREAK_SAVER_MESSAGE = "Streak saver used"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class StreakState:
    current_streak: int
    lifetime_streak: int
    streak_savers: int
    saver_earned: bool = False


@dataclass
class GapReport:
    had_gap: bool
    days_missed: int
    last_checkin_date: Optional[date]
    frozen_momentum: int
    should_reset: bool
    filled_dates: list[date] = field(default_factory=list)
    saver_used: bool = False
    saver_pending: bool = False


# ---------------------------------------------------------------------------
# Pure calculations
# ---------------------------------------------------------------------------

def account_age_days(first_checkin: date, today: date) -> int:
    """Day 1 is the first check-in day."""
    return max(1, days_between(first_checkin, today) + 1)


def extend_streak(
    previous_day: Optional[DailyMomentumRecord],
    latest: Optional[DailyMomentumRecord],
    max_savers: Optional[int] = None,
    saver_interval: Optional[int] = None,
) -> StreakState:
    """
    Streak fields for a real check-in.

    `previous_day` is the record for the prior calendar day (if any);
    `latest` is the most recent record of any type, which carries the
    lifetime streak and banked savers across resets.
    """
    max_savers = settings.MAX_STREAK_SAVERS if max_savers is None else max_savers
    saver_interval = settings.STREAK_SAVER_INTERVAL if saver_interval is None else saver_interval

    savers = (latest.streak_savers or 0) if latest is not None else 0
    lifetime = (latest.lifetime_streak or 0) if latest is not None else 0

    if previous_day is not None and previous_day.checkin_type in _STREAK_TYPES:
        current = (previous_day.current_streak or 0) + 1
    else:
        current = 1
    lifetime = max(lifetime, current)

    earned = False
    if current % saver_interval == 0 and savers < max_savers:
        savers += 1
        earned = True

    return StreakState(
        current_streak=current,
        lifetime_streak=lifetime,
        streak_savers=savers,
        saver_earned=earned,
    )


def calculate_consistency(
    records: Iterable[DailyMomentumRecord],
    account_age: int,
    today: date,
) -> int:
    if account_age < settings.CONSISTENCY_MIN_AGE:
        return 0

    real_keys = {
        date_key(r.date) for r in records if r.checkin_type == CheckinType.real
    }
    today_key = date_key(today)
    checked_in_today = today_key in real_keys

    effective_age = account_age if checked_in_today else account_age - 1
    window_size = min(effective_age, settings.CONSISTENCY_MAX_WINDOW)
    if window_size <= 0:
        return 0

    window_end = today if checked_in_today else today - timedelta(days=1)
    end_key = date_key(window_end)
    start_key = date_key(window_end - timedelta(days=window_size - 1))

    in_window = sum(1 for k in real_keys if start_key <= k <= end_key)
    return int(math.floor(100 * in_window / window_size + 0.5))


def streak_message(streak: int) -> str:
    if streak < 2:
        return f"{streak} day streak. Keep showing up!"
    if streak < 6:
        return f"{streak} day streak. Stay consistent!"
    if streak == 6:
        return "6 day streak. One more for a full week!"
    if streak == 7:
        return "7 days straight. That's a full week."
    if streak < 13:
        return f"{streak} days. Real momentum building."
    if streak == 13:
        return "13 day streak. You're one away from two full weeks!"
    if streak == 14:
        return "14 day streak. Two solid weeks. Keep it going!"
    if streak < 20:
        return f"{streak} days. The pattern is solid."
    if streak < 30:
        return f"{streak} days. This is consistent execution."
    if streak < 50:
        return f"{streak} days strong. This is who you are now."
    if streak < 100:
        return f"{streak} days straight. This level of consistency is rare."
    return f"{streak} days. You've built something lasting."


def missed_checkin_message(days_missed: int, frozen_momentum: int) -> str:
    if days_missed >= settings.GAP_RESET_DAYS:
        return "Let's rebuild. First brick back in place."
    if days_missed > 1:
        return f"It's been {days_missed} days. The experiment paused. Momentum needs data."
    if days_missed == 1:
        return (
            f"You missed yesterday. Your momentum held at {frozen_momentum}%. "
            "Check in today to keep building."
        )
    return ""


# ---------------------------------------------------------------------------
# Store-backed operations
# ---------------------------------------------------------------------------

def record_for(db: Session, user: User, day: date) -> Optional[DailyMomentumRecord]:
    return (
        db.query(DailyMomentumRecord)
        .filter(DailyMomentumRecord.user_id == user.id, DailyMomentumRecord.date == day)
        .first()
    )


def latest_record_before(db: Session, user: User, before: date) -> Optional[DailyMomentumRecord]:
    return (
        db.query(DailyMomentumRecord)
        .filter(DailyMomentumRecord.user_id == user.id, DailyMomentumRecord.date < before)
        .order_by(DailyMomentumRecord.date.desc())
        .first()
    )


def latest_record(db: Session, user: User) -> Optional[DailyMomentumRecord]:
    return (
        db.query(DailyMomentumRecord)
        .filter(DailyMomentumRecord.user_id == user.id)
        .order_by(DailyMomentumRecord.date.desc())
        .first()
    )


def find_last_real_record(
    db: Session,
    user: User,
    before: date,
    max_days_back: Optional[int] = None,
) -> Optional[DailyMomentumRecord]:
    """Most recent real record strictly before `before`, within the lookback."""
    max_days_back = settings.GAP_LOOKBACK_DAYS if max_days_back is None else max_days_back
    return (
        db.query(DailyMomentumRecord)
        .filter(
            DailyMomentumRecord.user_id == user.id,
            DailyMomentumRecord.checkin_type == CheckinType.real,
            DailyMomentumRecord.date < before,
            DailyMomentumRecord.date >= before - timedelta(days=max_days_back),
        )
        .order_by(DailyMomentumRecord.date.desc())
        .first()
    )


def records_between(
    db: Session, user: User, start: date, end: date
) -> list[DailyMomentumRecord]:
    """Records with start <= date <= end, oldest first."""
    return (
        db.query(DailyMomentumRecord)
        .filter(
            DailyMomentumRecord.user_id == user.id,
            DailyMomentumRecord.date >= start,
            DailyMomentumRecord.date <= end,
        )
        .order_by(DailyMomentumRecord.date.asc())
        .all()
    )


def _synthesized_record(
    user: User,
    day: date,
    last: DailyMomentumRecord,
    anchor: Optional[date],
    use_saver: bool,
) -> DailyMomentumRecord:
    record = DailyMomentumRecord(
        user_id=user.id,
        date=day,
        account_age_days=account_age_days(anchor, day) if anchor else 0,
        missed=True,
        daily_score=0,
        primary_habit_key="",
        primary_done=False,
        lifetime_streak=last.lifetime_streak,
        total_real_check_ins=last.total_real_check_ins,
        exercise_completed=False,
        celebrated=False,
    )
    record.behavior_grades = []
    record.behavior_ratings = {}
    if use_saver:
        record.checkin_type = CheckinType.streak_saver
        record.momentum_score = last.momentum_score
        record.momentum_delta = 0
        record.momentum_trend = MomentumTrend.stable
        record.momentum_message = STREAK_SAVER_MESSAGE
        record.current_streak = last.current_streak
        record.streak_savers = last.streak_savers - 1
    else:
        record.checkin_type = CheckinType.gap_fill
        record.momentum_score = 0
        record.momentum_delta = 0
        record.momentum_trend = MomentumTrend.down
        record.momentum_message = MISSED_CHECKIN_MESSAGE
        record.current_streak = 0
        record.streak_savers = last.streak_savers
    return record


def fill_missed_days(
    db: Session,
    user: User,
    today: date,
    hold_saver: bool = False,
) -> GapReport:
    """
    Synthesize records for every skipped day between the last real check-in
    and today (exclusive). Flushes; the caller commits.

    With `hold_saver`, a one-day gap that a saver would bridge is left
    unwritten and reported as `saver_pending`.
    """
    last = find_last_real_record(db, user, today)
    if last is None:
        return GapReport(
            had_gap=False, days_missed=0, last_checkin_date=None,
            frozen_momentum=0, should_reset=False,
        )

    gap = days_between(last.date, today)
    if gap <= 1:
        return GapReport(
            had_gap=False, days_missed=0, last_checkin_date=last.date,
            frozen_momentum=last.momentum_score, should_reset=False,
        )

    days_missed = gap - 1
    report = GapReport(
        had_gap=True,
        days_missed=days_missed,
        last_checkin_date=last.date,
        frozen_momentum=last.momentum_score,
        should_reset=days_missed >= settings.GAP_RESET_DAYS,
    )

    gap_days = date_range(last.date + timedelta(days=1), today - timedelta(days=1))
    existing = {
        r.date for r in records_between(db, user, gap_days[0], gap_days[-1])
    }
    missing = [d for d in gap_days if d not in existing]
    if not missing:
        return report

    use_saver = days_missed == 1 and (last.streak_savers or 0) > 0
    if use_saver and hold_saver:
        report.saver_pending = True
        return report

    anchor = first_checkin_date(user)
    for day in missing:
        db.add(_synthesized_record(user, day, last, anchor, use_saver))
        report.filled_dates.append(day)

    if use_saver:
        report.saver_used = True
        record_event(
            db, user, EventType.STREAK_SAVER_USED, missing[0],
            habit_key=last.primary_habit_key or None,
            meta={
                "streakLength": last.current_streak,
                "saversRemaining": last.streak_savers - 1,
            },
        )
        logger.info("User %s spent a streak saver on %s", user.email, missing[0])

    db.flush()
    logger.info(
        "Filled %d missed day(s) for %s (last real check-in %s)",
        len(missing), user.email, last.date,
    )
    return report


def current_streak(db: Session, user: User, today: date) -> int:
    """
    Live streak: today's real record, else a streak still open from
    yesterday, else one a banked saver can still carry over yesterday.
    """
    todays = record_for(db, user, today)
    if todays is not None and todays.checkin_type == CheckinType.real:
        return todays.current_streak
    yesterday = record_for(db, user, today - timedelta(days=1))
    if yesterday is not None and yesterday.checkin_type in _STREAK_TYPES:
        return yesterday.current_streak
    if yesterday is None:
        before = record_for(db, user, today - timedelta(days=2))
        if before is not None and before.is_real and (before.streak_savers or 0) > 0:
            return before.current_streak
    return 0


def get_consistency(db: Session, user: User, today: date) -> int:
    anchor = require_first_checkin_date(user)
    records = records_between(
        db, user, today - timedelta(days=settings.CONSISTENCY_MAX_WINDOW), today
    )
    return calculate_consistency(records, account_age_days(anchor, today), today)
