"""
Habit-progression router: focus habit, 7-day commitment, level-up.

GET  /users/{email}/focus                         current focus habit
POST /users/{email}/focus                         choose a new focus habit
GET  /users/{email}/commitment                    commitment state + modal flag
POST /users/{email}/commitment/offer              offer a commitment on the focus
POST /users/{email}/commitment/accept             offered → active (7 days)
POST /users/{email}/commitment/decline            offered → alternative_offered | terminal
POST /users/{email}/commitment/alternative/accept alternative_offered → active
GET  /users/{email}/level-up/eligibility          eligibility, no side effects
POST /users/{email}/level-up/accept               climb to the next rung
POST /users/{email}/level-up/decline              stick, slow down or switch habit
POST /users/{email}/level-up/adjust               slider: any offered target
"""

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from momentum_engine.core import clock
from momentum_engine.core.locks import user_lock
from momentum_engine.db.base import get_db, store_operation
from momentum_engine.models.commitment import Commitment
from momentum_engine.models.current_focus import CurrentFocus
from momentum_engine.models.habit_stack import HabitStackEntry
from momentum_engine.models.level_up_prompt import LevelUpPrompt
from momentum_engine.routers.momentum import decision_to_response
from momentum_engine.schemas.common import ErrorResponse, Toast, success_toast
from momentum_engine.schemas.momentum import RewardResponse
from momentum_engine.schemas.progression import (
    AcceptLevelUpRequest,
    AdjustTargetRequest,
    CommitmentEnvelope,
    CommitmentResponse,
    DeclineCommitmentRequest,
    DeclineLevelUpRequest,
    FocusEnvelope,
    FocusResponse,
    HabitStackEntryResponse,
    LevelUpEligibilityResponse,
    LevelUpOutcomeResponse,
    LevelUpPromptResponse,
    SelectFocusRequest,
)
from momentum_engine.services import progression
from momentum_engine.services.progression import LevelUpOutcome, NextStep
from momentum_engine.services.users import get_user

router = APIRouter(prefix="/users/{email}", tags=["progression"])

_ERRORS = {
    404: {"model": ErrorResponse, "description": "Unknown user, focus or commitment."},
    409: {"model": ErrorResponse, "description": "Transition not allowed in the current state."},
    422: {"model": ErrorResponse, "description": "Validation error or rejected target."},
}


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _iso(value: Optional[dt.date]) -> Optional[str]:
    return value.isoformat() if value else None


def focus_to_response(f: CurrentFocus) -> FocusResponse:
    return FocusResponse(
        habit_key=f.habit_key,
        habit=f.habit,
        habit_kind=f.habit_kind,
        level=f.level,
        target=f.target,
        started_at=f.started_at.isoformat(),
        last_level_up_at=_iso(f.last_level_up_at),
        consecutive_days=f.consecutive_days or 0,
        last_proven_target=f.last_proven_target,
    )


def commitment_to_response(c: Optional[Commitment], today: dt.date) -> CommitmentResponse:
    state = progression.commitment_state(c, today)
    show = progression.shows_commitment_modal(state)
    if c is None:
        return CommitmentResponse(state=state, show_commitment=show)
    return CommitmentResponse(
        state=state,
        show_commitment=show,
        habit_offered=c.habit_offered,
        habit_key=c.habit_key,
        habit_kind=c.habit_kind,
        target=c.target,
        accepted=bool(c.accepted),
        accepted_at=_iso(c.accepted_at),
        expires_at=_iso(c.expires_at),
        alternative_offered=c.alternative_offered,
        alternative_target=c.alternative_target,
        alternative_accepted=bool(c.alternative_accepted),
        decline_reason=c.decline_reason,
        celebrated=bool(c.celebrated),
    )


def prompt_to_response(p: Optional[LevelUpPrompt]) -> Optional[LevelUpPromptResponse]:
    if p is None:
        return None
    return LevelUpPromptResponse(
        pending=bool(p.pending),
        last_shown=_iso(p.last_shown),
        times_offered=p.times_offered or 0,
        times_accepted=p.times_accepted or 0,
        times_declined=p.times_declined or 0,
        decline_reasons=p.decline_reasons,
    )


def stack_entry_to_response(e: HabitStackEntry) -> HabitStackEntryResponse:
    return HabitStackEntryResponse(
        position=e.position,
        habit_key=e.habit_key,
        habit=e.habit,
        habit_kind=e.habit_kind,
        target=e.target,
        level=e.level,
        moved_at=e.moved_at.isoformat(),
    )


def _outcome_to_response(o: LevelUpOutcome, today: dt.date, toast: str) -> LevelUpOutcomeResponse:
    return LevelUpOutcomeResponse(
        focus=focus_to_response(o.focus) if o.focus is not None else None,
        commitment=commitment_to_response(o.commitment, today) if o.commitment is not None else None,
        reward=RewardResponse(**o.reward) if o.reward else None,
        prompt=prompt_to_response(o.prompt),
        moved_to_stack=stack_entry_to_response(o.moved_to_stack) if o.moved_to_stack else None,
        toast=success_toast(toast),
    )


# ---------------------------------------------------------------------------
# Focus
# ---------------------------------------------------------------------------

@router.get(
    "/focus",
    response_model=FocusEnvelope,
    summary="Current focus habit",
    responses={404: _ERRORS[404]},
)
def get_focus(email: str, db: Session = Depends(get_db)):
    user = get_user(db, email)
    focus = progression.get_focus(db, user)
    if focus is None:
        return FocusEnvelope(toast=Toast(message="Choose a habit to focus on.", type="info"))
    return FocusEnvelope(focus=focus_to_response(focus), toast=success_toast(focus.habit))


@router.post(
    "/focus",
    response_model=FocusEnvelope,
    summary="Choose a new focus habit",
    responses={404: _ERRORS[404], 422: _ERRORS[422]},
)
def select_focus(
    payload: SelectFocusRequest,
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    """Restarts the habit at level 1 and records a `new_primary` event."""
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "select_focus"):
        user = get_user(db, email)
        focus = progression.select_focus(db, user, payload.habit_key, today, payload.label)
        db.commit()
    return FocusEnvelope(
        focus=focus_to_response(focus),
        toast=success_toast(f"Now focusing on: {focus.habit}"),
    )


# ---------------------------------------------------------------------------
# Commitment
# ---------------------------------------------------------------------------

@router.get(
    "/commitment",
    response_model=CommitmentResponse,
    summary="Commitment state and whether to show the commitment modal",
    responses={404: _ERRORS[404]},
)
def get_commitment(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    """`accepted` reads as `active` before `expiresAt` and `expired` from it on."""
    user = get_user(db, email)
    return commitment_to_response(
        progression.get_commitment(db, user), reference_date or clock.today()
    )


@router.post(
    "/commitment/offer",
    response_model=CommitmentEnvelope,
    summary="Offer a 7-day commitment on the focus habit",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def offer_commitment(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "offer_commitment"):
        user = get_user(db, email)
        commitment = progression.offer_commitment(db, user, today)
        db.commit()
    return CommitmentEnvelope(
        commitment=commitment_to_response(commitment, today),
        toast=Toast(message=f"Commit to {commitment.habit_offered} for 7 days?", type="info"),
    )


@router.post(
    "/commitment/accept",
    response_model=CommitmentEnvelope,
    summary="Accept the offered commitment",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def accept_commitment(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "accept_commitment"):
        user = get_user(db, email)
        commitment = progression.accept_commitment(db, user, today)
        db.commit()
    return CommitmentEnvelope(
        commitment=commitment_to_response(commitment, today),
        toast=success_toast("Commitment accepted. See you tomorrow!"),
    )


@router.post(
    "/commitment/decline",
    response_model=CommitmentEnvelope,
    summary="Decline the offered commitment",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def decline_commitment(
    payload: DeclineCommitmentRequest,
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    """
    With `wantAlternative` the commitment moves to `alternative_offered`
    (a smaller movement target unless `alternativeHabit` names one);
    otherwise it ends in `terminal` and the reason is kept.
    """
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "decline_commitment"):
        user = get_user(db, email)
        commitment = progression.decline_commitment(
            db, user, today, payload.reason, payload.want_alternative, payload.alternative_habit
        )
        db.commit()
    if payload.want_alternative:
        toast = Toast(message=f"How about {commitment.alternative_offered} instead?", type="info")
    else:
        toast = Toast(message="No problem. Thanks for telling us why.", type="info")
    return CommitmentEnvelope(commitment=commitment_to_response(commitment, today), toast=toast)


@router.post(
    "/commitment/alternative/accept",
    response_model=CommitmentEnvelope,
    summary="Accept the alternative commitment",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def accept_alternative(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "accept_alternative"):
        user = get_user(db, email)
        commitment = progression.accept_alternative(db, user, today)
        db.commit()
    return CommitmentEnvelope(
        commitment=commitment_to_response(commitment, today),
        toast=success_toast(f"Committed to {commitment.habit_offered} for 7 days."),
    )


# ---------------------------------------------------------------------------
# Level-up
# ---------------------------------------------------------------------------

@router.get(
    "/level-up/eligibility",
    response_model=LevelUpEligibilityResponse,
    summary="Level-up eligibility (read-only)",
    responses={404: _ERRORS[404], 409: _ERRORS[409]},
)
def get_eligibility(
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    """Returns **409 MISSING_ANCHOR** for users who never checked in."""
    user = get_user(db, email)
    decision = progression.level_up_eligibility(db, user, reference_date or clock.today())
    if decision.eligible or decision.pending:
        toast = success_toast("You're ready to level up!")
    elif decision.days_remaining:
        toast = Toast(message=f"{decision.days_remaining} more day(s) to go.", type="info")
    else:
        toast = Toast(message="Keep showing up.", type="info")
    return LevelUpEligibilityResponse(
        decision=decision_to_response(decision),
        prompt=prompt_to_response(progression.get_prompt(db, user)),
        toast=toast,
    )


@router.post(
    "/level-up/accept",
    response_model=LevelUpOutcomeResponse,
    summary="Accept the pending level-up",
    responses={404: _ERRORS[404], 409: _ERRORS[409], 422: _ERRORS[422]},
)
def accept_level_up(
    email: str,
    payload: Optional[AcceptLevelUpRequest] = None,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    today = reference_date or clock.today()
    new_target = payload.new_target if payload is not None else None
    with user_lock(email), store_operation(db, "accept_level_up"):
        user = get_user(db, email)
        outcome = progression.accept_level_up(db, user, today, new_target)
        db.commit()
    return _outcome_to_response(outcome, today, f"Level up! New target: {outcome.focus.habit}")


@router.post(
    "/level-up/decline",
    response_model=LevelUpOutcomeResponse,
    summary="Decline the pending level-up",
    responses={404: _ERRORS[404], 409: _ERRORS[409], 422: _ERRORS[422]},
)
def decline_level_up(
    payload: DeclineLevelUpRequest,
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    """
    - `stick_current`: keep the target; the cooldown restarts today.
    - `increase_some_days`: keep the target; the prompt returns after cooldown.
    - `try_different`: the focus habit moves to the habit stack.
    """
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "decline_level_up"):
        user = get_user(db, email)
        outcome = progression.decline_level_up(db, user, today, payload.reason, payload.next_step)
        db.commit()
    if payload.next_step == NextStep.TRY_DIFFERENT:
        message = "Habit moved to your stack. Pick a new focus."
    else:
        message = "Got it. We'll keep your current target."
    return _outcome_to_response(outcome, today, message)


@router.post(
    "/level-up/adjust",
    response_model=LevelUpOutcomeResponse,
    summary="Move the movement target to any offered value",
    responses={404: _ERRORS[404], 422: _ERRORS[422]},
)
def adjust_target(
    payload: AdjustTargetRequest,
    email: str,
    reference_date: Optional[dt.date] = Query(default=None, description="As-of date (YYYY-MM-DD)."),
    db: Session = Depends(get_db),
):
    today = reference_date or clock.today()
    with user_lock(email), store_operation(db, "adjust_target"):
        user = get_user(db, email)
        outcome = progression.adjust_target(db, user, today, payload.minutes)
        db.commit()
    return _outcome_to_response(outcome, today, f"Target set to {payload.minutes} minutes.")
