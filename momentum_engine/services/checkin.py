"""
Check-in submission: one transactional unit per user.

  1. resolve the user; refuse a second record for the date, a future date,
     or a date behind the records already stored
  2. fill missed days (gap_fill / streak_saver rows)
  3. first check-in: anchor date, focus habit, pre-accepted commitment
  4. exerciseCompleted = declared OR a session that day >= target minutes
  5. daily momentum against the last real record's score
  6. streak + banked savers, totalRealCheckIns + 1
  7. persist, resolve the reward, record habit events
  8. consult level-up eligibility

Everything runs under the per-user lock and ends in a single commit. A
concurrent duplicate that slips past step 1 hits the (user_id, date)
unique constraint and is reported as DuplicateCheckinError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum_engine.core import clock
from momentum_engine.core.config import settings
from momentum_engine.core.errors import DuplicateCheckinError, InvalidCheckinDateError
from momentum_engine.core.locks import user_lock
from momentum_engine.db.base import store_operation
from momentum_engine.models.daily_momentum import CheckinType, DailyMomentumRecord, MomentumTrend
from momentum_engine.models.exercise_session import ExerciseSession
from momentum_engine.models.user import User
from momentum_engine.schemas.momentum import CheckinRequest, ExerciseSessionRequest
from momentum_engine.services import habits, progression, streaks
from momentum_engine.services.events import EventType, record_event
from momentum_engine.services.momentum_calculator import (
    calculate_daily_momentum,
    grades_from_ratings,
)
from momentum_engine.services.rewards import RewardContext, apply_reward, resolve_reward
from momentum_engine.services.users import (
    first_checkin_date,
    get_or_create_user,
    write_first_checkin_date,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckinResult:
    record: DailyMomentumRecord
    reward: dict
    gaps: streaks.GapReport
    level_up: progression.LevelUpDecision
    streak_message: str
    first_checkin: bool


def derive_exercise_completed(
    db: Session,
    user: User,
    day: date,
    target_minutes: int,
    declared: bool,
) -> bool:
    if declared:
        return True
    session = (
        db.query(ExerciseSession.id)
        .filter(
            ExerciseSession.user_id == user.id,
            ExerciseSession.date == day,
            ExerciseSession.duration_min >= target_minutes,
        )
        .first()
    )
    return session is not None


def _ensure_focus(db: Session, user: User, payload: CheckinRequest, day: date):
    focus = progression.get_focus(db, user)
    if focus is not None:
        return focus
    if payload.habit_key:
        return progression.select_focus(db, user, payload.habit_key, day, payload.habit_label)
    return progression.default_focus(db, user, day)


def _submit(db: Session, email: str, payload: CheckinRequest, day: date) -> CheckinResult:
    user = get_or_create_user(db, email)
    if streaks.record_for(db, user, day) is not None:
        raise DuplicateCheckinError(day)
    newest = streaks.latest_record(db, user)
    if newest is not None and day < newest.date:
        raise InvalidCheckinDateError(day, f"records already run through {newest.date}")
    started = first_checkin_date(user)
    if started is not None and day < started:
        raise InvalidCheckinDateError(day, f"before the first check-in on {started}")

    gaps = streaks.fill_missed_days(db, user, day)

    first_checkin = user.account_info is None
    if first_checkin:
        write_first_checkin_date(db, user, day)
    anchor = user.account_info.first_checkin_date
    focus = _ensure_focus(db, user, payload, day)
    if first_checkin and progression.get_commitment(db, user) is None:
        progression.bootstrap_commitment(db, user, focus, day)

    kind = progression.focus_kind(focus)
    target = habits.kind_target(kind)
    exercise_completed = derive_exercise_completed(
        db, user, day, target or settings.DEFAULT_MOVEMENT_MINUTES, payload.exercise_declared
    )

    age = streaks.account_age_days(anchor, day)
    last_real = streaks.find_last_real_record(
        db, user, day, max_days_back=max(clock.days_between(anchor, day), 1)
    )
    ratings = dict(payload.behavior_ratings)
    momentum = calculate_daily_momentum(
        grades_from_ratings(ratings),
        focus.habit_key,
        age,
        last_real.momentum_score if last_real is not None else None,
    )
    done = habits.primary_done(
        kind, ratings, payload.eating_pattern, exercise_completed, payload.primary_declared
    )

    yesterday = streaks.record_for(db, user, day - timedelta(days=1))
    latest = streaks.latest_record_before(db, user, day)
    streak = streaks.extend_streak(yesterday, latest)
    total_real = (latest.total_real_check_ins if latest is not None else 0) + 1

    record = DailyMomentumRecord(
        user_id=user.id,
        date=day,
        account_age_days=age,
        checkin_type=CheckinType.real,
        missed=False,
        energy_balance=payload.energy_balance,
        eating_pattern=payload.eating_pattern,
        daily_score=momentum.daily_score,
        momentum_score=momentum.momentum_score,
        momentum_delta=momentum.momentum_delta,
        momentum_trend=MomentumTrend(momentum.momentum_trend),
        momentum_message=momentum.momentum_message,
        primary_habit_key=focus.habit_key,
        primary_done=done,
        current_streak=streak.current_streak,
        lifetime_streak=streak.lifetime_streak,
        streak_savers=streak.streak_savers,
        total_real_check_ins=total_real,
        exercise_completed=exercise_completed,
        exercise_target_minutes=target,
        note=payload.note,
        celebrated=False,
    )
    record.behavior_grades = momentum.behavior_grades
    record.behavior_ratings = ratings
    db.add(record)
    db.flush()

    if done:
        continues = yesterday is not None and yesterday.is_real and yesterday.primary_done
        focus.consecutive_days = (focus.consecutive_days or 0) + 1 if continues else 1
    else:
        focus.consecutive_days = 0

    if streak.saver_earned:
        record_event(
            db, user, EventType.STREAK_SAVER_EARNED, day,
            habit_key=focus.habit_key,
            meta={"saversRemaining": streak.streak_savers, "streakLength": streak.current_streak},
        )

    commitment = progression.get_commitment(db, user)
    ctx = RewardContext(
        today=day,
        current_streak=streak.current_streak,
        total_real_check_ins=total_real,
        primary_done=done,
        commitment=commitment,
        days_since_last_real=(
            clock.days_between(last_real.date, day) if last_real is not None else None
        ),
        ratings=ratings,
        energy_balance=payload.energy_balance,
        eating_pattern=payload.eating_pattern,
    )
    event = resolve_reward(ctx)
    reward = apply_reward(db, user, event, commitment, day)
    if event is not None:
        record.celebrated = True

    level_up = progression.check_level_up(db, user, day)
    db.flush()

    logger.info(
        "Check-in %s %s: daily=%d momentum=%d streak=%d reward=%s",
        user.email, day, record.daily_score, record.momentum_score,
        record.current_streak, reward["event"],
    )
    return CheckinResult(
        record=record,
        reward=reward,
        gaps=gaps,
        level_up=level_up,
        streak_message=streaks.streak_message(streak.current_streak),
        first_checkin=first_checkin,
    )


def submit_checkin(
    db: Session,
    email: str,
    payload: CheckinRequest,
    today: Optional[date] = None,
) -> CheckinResult:
    local_today = today or clock.today()
    day = payload.day or local_today
    if day > local_today:
        raise InvalidCheckinDateError(day, "the date is in the future")
    with user_lock(email):
        try:
            with store_operation(db, "submit_checkin"):
                result = _submit(db, email, payload, day)
                db.commit()
        except IntegrityError as exc:
            logger.warning("Concurrent check-in for %s on %s rejected", email, day)
            raise DuplicateCheckinError(day) from exc
    db.refresh(result.record)
    return result


def log_exercise_session(
    db: Session,
    email: str,
    payload: ExerciseSessionRequest,
    today: Optional[date] = None,
) -> ExerciseSession:
    day = payload.day or today or clock.today()
    with store_operation(db, "log_exercise_session"):
        user = get_or_create_user(db, email)
        session = ExerciseSession(user_id=user.id, date=day, duration_min=payload.duration_min)
        db.add(session)
        db.commit()
    db.refresh(session)
    return session
