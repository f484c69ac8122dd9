"""
Momentum router.

POST /users/{email}/momentum/checkins     submit today's check-in
GET  /users/{email}/momentum/summary      dashboard summary
GET  /users/{email}/momentum/history      last N days of records
GET  /users/{email}/momentum/consistency  rolling consistency (needs anchor)
POST /users/{email}/momentum/gaps         fill missed days (dashboard load)
GET  /users/{email}/momentum/{date}       one day's record
POST /users/{email}/sessions              log a movement session
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from momentum_engine.core import clock
from momentum_engine.core.errors import RecordNotFoundError
from momentum_engine.core.locks import user_lock
from momentum_engine.db.base import get_db, store_operation
from momentum_engine.models.daily_momentum import DailyMomentumRecord
from momentum_engine.schemas.common import ErrorResponse, Toast, success_toast
from momentum_engine.schemas.momentum import (
    BehaviorGrade,
    CheckinRequest,
    CheckinResponse,
    ConsistencyResponse,
    DailyMomentumResponse,
    ExerciseSessionRequest,
    ExerciseSessionResponse,
    GapReportResponse,
    LevelUpDecisionResponse,
    MomentumHistoryResponse,
    MomentumSummaryResponse,
    PrimaryHabit,
    RewardResponse,
)
from momentum_engine.services import dashboard, streaks
from momentum_engine.services.checkin import log_exercise_session, submit_checkin
from momentum_engine.services.progression import LevelUpDecision
from momentum_engine.services.users import get_user

router = APIRouter(prefix="/users/{email}", tags=["momentum"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _record_to_response(r: DailyMomentumRecord) -> DailyMomentumResponse:
    return DailyMomentumResponse(
        date=r.date.isoformat(),
        account_age_days=r.account_age_days,
        checkin_type=r.checkin_type.value,
        missed=r.missed,
        behavior_grades=[BehaviorGrade(**g) for g in r.behavior_grades],
        behavior_ratings=r.behavior_ratings,
        daily_score=r.daily_score,
        momentum_score=r.momentum_score,
        momentum_delta=r.momentum_delta,
        momentum_trend=r.momentum_trend.value,
        momentum_message=r.momentum_message,
        primary=PrimaryHabit(habit_key=r.primary_habit_key, done=r.primary_done),
        current_streak=r.current_streak,
        lifetime_streak=r.lifetime_streak,
        streak_savers=r.streak_savers,
        total_real_check_ins=r.total_real_check_ins,
        exercise_completed=r.exercise_completed,
        exercise_target_minutes=r.exercise_target_minutes,
        energy_balance=r.energy_balance,
        eating_pattern=r.eating_pattern,
        note=r.note,
        celebrated=r.celebrated,
        created_at=r.created_at.isoformat() if r.created_at else "",
    )


def _gaps_to_response(report: streaks.GapReport) -> GapReportResponse:
    message = streaks.missed_checkin_message(report.days_missed, report.frozen_momentum)
    return GapReportResponse(
        had_gap=report.had_gap,
        days_missed=report.days_missed,
        last_checkin_date=report.last_checkin_date.isoformat() if report.last_checkin_date else None,
        frozen_momentum=report.frozen_momentum,
        should_reset=report.should_reset,
        filled_dates=[d.isoformat() for d in report.filled_dates],
        saver_used=report.saver_used,
        saver_pending=report.saver_pending,
        message=message,
        toast=Toast(message=message, type="info") if message else None,
    )


def decision_to_response(d: LevelUpDecision) -> LevelUpDecisionResponse:
    return LevelUpDecisionResponse(
        eligible=d.eligible,
        reason=d.reason,
        days_hit=d.days_hit,
        days_remaining=d.days_remaining,
        next_target=d.next_target,
        pending=d.pending,
    )


_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown user or record."},
    409: {"model": ErrorResponse, "description": "Conflict (duplicate check-in / missing anchor)."},
    422: {"model": ErrorResponse, "description": "Validation error."},
    503: {"model": ErrorResponse, "description": "Record store unavailable."},
}


# ---------------------------------------------------------------------------
# POST /users/{email}/momentum/checkins
# ---------------------------------------------------------------------------

@router.post(
    "/momentum/checkins",
    response_model=CheckinResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a daily check-in",
    responses={409: _ERRORS[409], 422: _ERRORS[422], 503: _ERRORS[503]},
)
def create_checkin(
    payload: CheckinRequest,
    email: str = Path(description="User key (email)."),
    db: Session = Depends(get_db),
):
    """
    Runs the whole check-in as one transaction: gap fill, first-check-in
    bootstrap, daily momentum, streak, reward and level-up eligibility.

    A second check-in for the same date returns **409
    CHECKIN_ALREADY_EXISTS**. A future date, or one behind the records
    already stored, returns **422 INVALID_CHECKIN_DATE**.
    """
    result = submit_checkin(db, email, payload)
    toast = "Check-in saved." if not result.first_checkin else "First check-in saved. Welcome!"
    return CheckinResponse(
        record=_record_to_response(result.record),
        reward=RewardResponse(**result.reward),
        gaps=_gaps_to_response(result.gaps),
        level_up=decision_to_response(result.level_up),
        streak_message=result.streak_message,
        toast=success_toast(toast),
    )


# ---------------------------------------------------------------------------
# GET /users/{email}/momentum/summary
# ---------------------------------------------------------------------------

@router.get(
    "/momentum/summary",
    response_model=MomentumSummaryResponse,
    summary="Dashboard summary: streak, consistency, commitment modal",
    responses={404: _ERRORS[404]},
)
def get_summary(
    email: str,
    reference_date: Optional[dt.date] = Query(
        default=None, description="As-of date (YYYY-MM-DD). Defaults to today."
    ),
    db: Session = Depends(get_db),
):
    user = get_user(db, email)
    s = dashboard.momentum_summary(db, user, reference_date or clock.today())
    toast = None
    if s.anchor_missing:
        toast = Toast(message="Complete your first check-in to unlock your stats.", type="info")
    return MomentumSummaryResponse(
        date=s.day.isoformat(),
        checked_in_today=s.checked_in_today,
        today=_record_to_response(s.today_record) if s.today_record else None,
        current_streak=s.current_streak,
        streak_message=s.streak_message,
        lifetime_check_ins=s.lifetime_check_ins,
        consistency=s.consistency,
        account_age_days=s.account_age_days,
        show_commitment=s.show_commitment,
        commitment_state=s.commitment_state,
        missed_message=s.missed_message,
        anchor_missing=s.anchor_missing,
        toast=toast,
    )


# ---------------------------------------------------------------------------
# GET /users/{email}/momentum/history
# ---------------------------------------------------------------------------

@router.get(
    "/momentum/history",
    response_model=MomentumHistoryResponse,
    summary="Momentum records for the last N days (newest first)",
    responses={404: _ERRORS[404]},
)
def get_history(
    email: str,
    days: int = Query(default=30, ge=1, le=365, description="Calendar days to include."),
    reference_date: Optional[dt.date] = Query(default=None),
    db: Session = Depends(get_db),
):
    user = get_user(db, email)
    records = dashboard.momentum_history(db, user, reference_date or clock.today(), days)
    return MomentumHistoryResponse(
        total=len(records),
        items=[_record_to_response(r) for r in records],
    )


# ---------------------------------------------------------------------------
# GET /users/{email}/momentum/consistency
# ---------------------------------------------------------------------------

@router.get(
    "/momentum/consistency",
    response_model=ConsistencyResponse,
    summary="Rolling consistency % (0 before day 7)",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def get_consistency(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None),
    db: Session = Depends(get_db),
):
    """Returns **409 MISSING_ANCHOR** when the user has never checked in."""
    user = get_user(db, email)
    today = reference_date or clock.today()
    consistency = streaks.get_consistency(db, user, today)
    anchor = user.account_info.first_checkin_date
    return ConsistencyResponse(
        consistency=consistency,
        account_age_days=streaks.account_age_days(anchor, today),
        current_streak=streaks.current_streak(db, user, today),
        toast=success_toast(f"{consistency}% consistency"),
    )


# ---------------------------------------------------------------------------
# POST /users/{email}/momentum/gaps
# ---------------------------------------------------------------------------

@router.post(
    "/momentum/gaps",
    response_model=GapReportResponse,
    summary="Detect and fill missed days",
    responses={404: _ERRORS[404], 503: _ERRORS[503]},
)
def detect_gaps(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    The dashboard-load path. Synthesizes `gap_fill` rows for every skipped
    day up to yesterday. A single missed day a banked saver can bridge is
    left open (`saverPending`) until the next check-in spends the saver.
    Idempotent.
    """
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "fill_missed_days"):
        user = get_user(db, email)
        report = streaks.fill_missed_days(db, user, today, hold_saver=True)
        db.commit()
    return _gaps_to_response(report)


# ---------------------------------------------------------------------------
# GET /users/{email}/momentum/{date}
# ---------------------------------------------------------------------------

@router.get(
    "/momentum/{day}",
    response_model=DailyMomentumResponse,
    summary="One day's momentum record",
    responses={404: _ERRORS[404]},
)
def get_record(
    email: str,
    day: dt.date = Path(description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    user = get_user(db, email)
    record = streaks.record_for(db, user, day)
    if record is None:
        raise RecordNotFoundError(day)
    return _record_to_response(record)


# ---------------------------------------------------------------------------
# POST /users/{email}/sessions
# ---------------------------------------------------------------------------

@router.post(
    "/sessions",
    response_model=ExerciseSessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log a movement session",
    responses={422: _ERRORS[422], 503: _ERRORS[503]},
)
def create_session(
    payload: ExerciseSessionRequest,
    email: str,
    db: Session = Depends(get_db),
):
    """Sessions at or above the focus target mark that day's exercise complete."""
    session = log_exercise_session(db, email, payload)
    return ExerciseSessionResponse(
        id=session.id,
        date=session.date.isoformat(),
        duration_min=session.duration_min,
        toast=success_toast(f"{session.duration_min} minute session logged."),
    )
