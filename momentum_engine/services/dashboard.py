"""
Read-side views for the dashboard: summary, history, single records.

Nothing here writes. A user without a firstCheckinDate gets a 0%
consistency fallback plus `anchor_missing=True` so the caller can surface
it; `streaks.get_consistency` is the strict variant that raises.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from momentum_engine.core.config import settings
from momentum_engine.models.daily_momentum import DailyMomentumRecord
from momentum_engine.models.user import User
from momentum_engine.services import progression, streaks
from momentum_engine.services.users import first_checkin_date

logger = logging.getLogger(__name__)


@dataclass
class MomentumSummary:
    day: date
    checked_in_today: bool
    today_record: Optional[DailyMomentumRecord]
    current_streak: int
    streak_message: str
    lifetime_check_ins: int
    consistency: int
    account_age_days: int
    show_commitment: bool
    commitment_state: str
    missed_message: str
    anchor_missing: bool


def momentum_summary(db: Session, user: User, today: date) -> MomentumSummary:
    anchor = first_checkin_date(user)
    todays = streaks.record_for(db, user, today)
    checked_in = todays is not None and todays.is_real

    latest = streaks.latest_record_before(db, user, today + timedelta(days=1))
    lifetime = latest.total_real_check_ins if latest is not None else 0
    streak = streaks.current_streak(db, user, today)

    if anchor is None:
        logger.warning("No firstCheckinDate for %s; consistency falls back to 0", user.email)
        age, consistency = 0, 0
    else:
        age = streaks.account_age_days(anchor, today)
        records = streaks.records_between(
            db, user, today - timedelta(days=settings.CONSISTENCY_MAX_WINDOW), today
        )
        consistency = streaks.calculate_consistency(records, age, today)

    missed_message = ""
    if not checked_in:
        last_real = streaks.find_last_real_record(db, user, today)
        if last_real is not None:
            days_missed = (today - last_real.date).days - 1
            missed_message = streaks.missed_checkin_message(days_missed, last_real.momentum_score)

    view = progression.commitment_view(db, user, today)
    return MomentumSummary(
        day=today,
        checked_in_today=checked_in,
        today_record=todays if checked_in else None,
        current_streak=streak,
        streak_message=streaks.streak_message(streak),
        lifetime_check_ins=lifetime,
        consistency=consistency,
        account_age_days=age,
        show_commitment=view.show_commitment,
        commitment_state=view.state,
        missed_message=missed_message,
        anchor_missing=anchor is None,
    )


def momentum_history(db: Session, user: User, today: date, days: int) -> list[DailyMomentumRecord]:
    """Records for the last `days` calendar days, newest first."""
    records = streaks.records_between(db, user, today - timedelta(days=days - 1), today)
    return list(reversed(records))
