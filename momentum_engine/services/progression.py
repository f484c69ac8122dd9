"""
Habit-Progression State Machine.

Commitment (one row per user, a rolling 7-day contract)
--------------------------------------------------------
  none ──offer──► offered ──accept──► accepted ──(expiresAt)──► expired
                     │                   │
                     └─decline─► declined└──(celebrated)──► completed
                                   │
                 want alternative ─┤── alternative_offered ──accept──► accepted
                                   └── terminal (reason only)

"active" and "expired" are read-time views of `accepted`: the contract is
active while today < expiresAt and expired from expiresAt on. Expiry always
asks for a new decision; nothing renews silently.

Level-up
--------
Eligible when all of:
  a) account age >= 7 days
  b) the last prompt was shown >= 7 days ago (or never)
  c) >= 5 of the last 7 records are real, hit the primary habit and were
     logged against the current habit key
Only Movement habits have a ladder to climb.

lastProvenTarget advances to the previous target only when that target was
hit on >= 5 of the last 7 days. It never moves down on its own.

Nothing here commits; callers own the transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from momentum_engine.core.clock import date_key, days_between
from momentum_engine.core.config import settings
from momentum_engine.core.errors import (
    CommitmentNotFoundError,
    FocusNotFoundError,
    InvalidCommitmentTransitionError,
    InvalidTargetError,
    LevelUpNotPendingError,
    NoNextLevelError,
)
from momentum_engine.models.commitment import Commitment, CommitmentStatus
from momentum_engine.models.current_focus import CurrentFocus
from momentum_engine.models.daily_momentum import CheckinType, DailyMomentumRecord
from momentum_engine.models.habit_stack import HabitStackEntry
from momentum_engine.models.level_up_prompt import LevelUpPrompt
from momentum_engine.models.user import User
from momentum_engine.services import habits
from momentum_engine.services.events import EventType, record_event
from momentum_engine.services.rewards import RewardEvent, reward_payload
from momentum_engine.services.streaks import account_age_days
from momentum_engine.services.users import require_first_checkin_date

logger = logging.getLogger(__name__)


class CommitmentState:
    NONE                = "none"
    OFFERED             = "offered"
    ACTIVE              = "active"
    EXPIRED             = "expired"
    DECLINED            = "declined"
    ALTERNATIVE_OFFERED = "alternative_offered"
    TERMINAL            = "terminal"
    COMPLETED           = "completed"


class LevelUpReason:
    ELIGIBLE          = "eligible"
    ACCOUNT_TOO_NEW   = "account_too_new"
    COOLDOWN          = "cooldown"
    NO_RECENT_DATA    = "no_recent_data"
    INSUFFICIENT_HITS = "insufficient_hits"
    NO_NEXT_LEVEL     = "no_next_level"
    NO_FOCUS          = "no_focus"


class NextStep:
    STICK_CURRENT      = "stick_current"
    INCREASE_SOME_DAYS = "increase_some_days"
    TRY_DIFFERENT      = "try_different"


# States from which a fresh offer may replace the row.
_OFFERABLE = {
    CommitmentState.NONE,
    CommitmentState.EXPIRED,
    CommitmentState.COMPLETED,
    CommitmentState.TERMINAL,
}
_SHOW_MODAL = {
    CommitmentState.NONE,
    CommitmentState.EXPIRED,
    CommitmentState.COMPLETED,
    CommitmentState.OFFERED,
    CommitmentState.ALTERNATIVE_OFFERED,
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class CommitmentView:
    state: str
    show_commitment: bool
    commitment: Optional[Commitment] = None


@dataclass
class LevelUpDecision:
    eligible: bool
    reason: str
    days_hit: int = 0
    days_remaining: int = 0
    next_target: Optional[int] = None
    pending: bool = False


@dataclass
class LevelUpOutcome:
    focus: Optional[CurrentFocus]
    commitment: Optional[Commitment] = None
    reward: Optional[dict] = None
    prompt: Optional[LevelUpPrompt] = None
    moved_to_stack: Optional[HabitStackEntry] = None


# ---------------------------------------------------------------------------
# Focus
# ---------------------------------------------------------------------------

def get_focus(db: Session, user: User) -> Optional[CurrentFocus]:
    return db.query(CurrentFocus).filter(CurrentFocus.user_id == user.id).first()


def require_focus(db: Session, user: User) -> CurrentFocus:
    focus = get_focus(db, user)
    if focus is None:
        raise FocusNotFoundError(user.email)
    return focus


def focus_kind(focus: CurrentFocus) -> habits.HabitKind:
    return habits.habit_from_row(focus.habit_kind, focus.target, focus.habit)


def _apply_kind(focus: CurrentFocus, kind: habits.HabitKind) -> None:
    focus.habit_kind = habits.kind_name(kind)
    focus.target = habits.kind_target(kind)
    focus.habit_key = habits.habit_key_for(kind)
    focus.habit = habits.habit_label_for(kind)
    focus.level = habits.level_for(kind)


def select_focus(
    db: Session,
    user: User,
    habit_key: str,
    today: date,
    label: Optional[str] = None,
) -> CurrentFocus:
    """(Re)open the focus habit at its starting level."""
    kind = habits.resolve_habit(habit_key, label)
    focus = get_focus(db, user)
    if focus is None:
        focus = CurrentFocus(user_id=user.id)
        db.add(focus)
    _apply_kind(focus, kind)
    focus.started_at = today
    focus.last_level_up_at = None
    focus.consecutive_days = 0
    focus.last_proven_target = None
    record_event(
        db, user, EventType.NEW_PRIMARY, today,
        habit_key=focus.habit_key, meta={"habitName": focus.habit},
    )
    db.flush()
    logger.info("Focus for %s set to %s", user.email, focus.habit_key)
    return focus


def default_focus(db: Session, user: User, today: date) -> CurrentFocus:
    return select_focus(db, user, f"walk_{settings.DEFAULT_MOVEMENT_MINUTES}min", today)


def archive_focus(db: Session, user: User, focus: CurrentFocus, today: date) -> HabitStackEntry:
    """Move the focus habit onto the habit stack and clear it."""
    position = db.query(HabitStackEntry).filter(HabitStackEntry.user_id == user.id).count() + 1
    entry = HabitStackEntry(
        user_id=user.id,
        position=position,
        habit_key=focus.habit_key,
        habit=focus.habit,
        habit_kind=focus.habit_kind,
        target=focus.target,
        level=focus.level,
        moved_at=today,
    )
    db.add(entry)
    record_event(
        db, user, EventType.MOVED_TO_STACK, today,
        habit_key=focus.habit_key, meta={"habitName": focus.habit},
    )
    db.delete(focus)
    db.flush()
    return entry


def list_habit_stack(db: Session, user: User) -> list[HabitStackEntry]:
    return (
        db.query(HabitStackEntry)
        .filter(HabitStackEntry.user_id == user.id)
        .order_by(HabitStackEntry.position.asc())
        .all()
    )


# ---------------------------------------------------------------------------
# Commitment
# ---------------------------------------------------------------------------

def get_commitment(db: Session, user: User) -> Optional[Commitment]:
    return db.query(Commitment).filter(Commitment.user_id == user.id).first()


def commitment_state(commitment: Optional[Commitment], today: date) -> str:
    if commitment is None:
        return CommitmentState.NONE
    if commitment.status == CommitmentStatus.accepted:
        if commitment.expires_at is not None and today >= commitment.expires_at:
            return CommitmentState.EXPIRED
        return CommitmentState.ACTIVE
    return commitment.status.value


def shows_commitment_modal(state: str) -> bool:
    return state in _SHOW_MODAL


def commitment_view(db: Session, user: User, today: date) -> CommitmentView:
    commitment = get_commitment(db, user)
    state = commitment_state(commitment, today)
    return CommitmentView(
        state=state,
        show_commitment=shows_commitment_modal(state),
        commitment=commitment,
    )


def _start_window(commitment: Commitment, today: date) -> None:
    commitment.status = CommitmentStatus.accepted
    commitment.accepted = True
    commitment.accepted_at = today
    commitment.expires_at = today + timedelta(days=settings.COMMITMENT_DAYS)


def _write_commitment(
    db: Session,
    user: User,
    kind: habits.HabitKind,
    status: CommitmentStatus,
    today: date,
) -> Commitment:
    """Open a contract for `kind`, replacing any previous row in place."""
    commitment = get_commitment(db, user)
    if commitment is None:
        commitment = Commitment(user_id=user.id)
        db.add(commitment)
    commitment.status = status
    commitment.habit_offered = habits.habit_label_for(kind)
    commitment.habit_key = habits.habit_key_for(kind)
    commitment.habit_kind = habits.kind_name(kind)
    commitment.target = habits.kind_target(kind)
    commitment.offered_at = today
    commitment.alternative_offered = None
    commitment.alternative_key = None
    commitment.alternative_kind = None
    commitment.alternative_target = None
    commitment.alternative_accepted = False
    commitment.decline_reason = None
    commitment.celebrated = False
    if status == CommitmentStatus.accepted:
        _start_window(commitment, today)
    else:
        commitment.accepted = False
        commitment.accepted_at = None
        commitment.expires_at = None
    return commitment


def _require_state(
    commitment: Optional[Commitment],
    today: date,
    allowed: set[str],
    action: str,
) -> None:
    state = commitment_state(commitment, today)
    if state not in allowed:
        raise InvalidCommitmentTransitionError(state, action)


def _require_commitment(db: Session, user: User) -> Commitment:
    commitment = get_commitment(db, user)
    if commitment is None:
        raise CommitmentNotFoundError(user.email)
    return commitment


def bootstrap_commitment(db: Session, user: User, focus: CurrentFocus, today: date) -> Commitment:
    """First real check-in: a pre-accepted contract on the focus habit."""
    commitment = _write_commitment(db, user, focus_kind(focus), CommitmentStatus.accepted, today)
    db.flush()
    return commitment


def offer_commitment(db: Session, user: User, today: date) -> Commitment:
    focus = require_focus(db, user)
    _require_state(get_commitment(db, user), today, _OFFERABLE, "offer")
    commitment = _write_commitment(db, user, focus_kind(focus), CommitmentStatus.offered, today)
    db.flush()
    return commitment


def accept_commitment(db: Session, user: User, today: date) -> Commitment:
    commitment = _require_commitment(db, user)
    _require_state(commitment, today, {CommitmentState.OFFERED}, "accept")
    _start_window(commitment, today)
    db.flush()
    return commitment


def _alternative_for(
    focus: Optional[CurrentFocus],
    commitment: Commitment,
    alternative_habit: Optional[str],
) -> habits.HabitKind:
    if alternative_habit:
        return habits.resolve_habit(alternative_habit)
    kind = habits.habit_from_row(commitment.habit_kind, commitment.target, commitment.habit_offered)
    if isinstance(kind, habits.Movement):
        smaller = habits.previous_level(kind).minutes
        proven = focus.last_proven_target if focus is not None else None
        if proven:
            smaller = min(smaller, proven)
        return habits.Movement(max(5, smaller))
    return habits.Movement(settings.DEFAULT_MOVEMENT_MINUTES)


def decline_commitment(
    db: Session,
    user: User,
    today: date,
    reason: Optional[str],
    want_alternative: bool,
    alternative_habit: Optional[str] = None,
) -> Commitment:
    """
    offered → declined, then straight on to alternative_offered (a smaller
    movement target, or the habit the caller names) or terminal.
    """
    commitment = _require_commitment(db, user)
    _require_state(commitment, today, {CommitmentState.OFFERED}, "decline")

    commitment.status = CommitmentStatus.declined
    commitment.decline_reason = reason
    if want_alternative:
        alt = _alternative_for(get_focus(db, user), commitment, alternative_habit)
        commitment.alternative_offered = habits.habit_label_for(alt)
        commitment.alternative_key = habits.habit_key_for(alt)
        commitment.alternative_kind = habits.kind_name(alt)
        commitment.alternative_target = habits.kind_target(alt)
        commitment.status = CommitmentStatus.alternative_offered
    else:
        commitment.status = CommitmentStatus.terminal
    db.flush()
    return commitment


def accept_alternative(db: Session, user: User, today: date) -> Commitment:
    commitment = _require_commitment(db, user)
    _require_state(
        commitment, today, {CommitmentState.ALTERNATIVE_OFFERED}, "accept the alternative for"
    )

    alt = habits.habit_from_row(
        commitment.alternative_kind, commitment.alternative_target, commitment.alternative_offered
    )
    commitment.alternative_accepted = True
    commitment.habit_offered = habits.habit_label_for(alt)
    commitment.habit_key = habits.habit_key_for(alt)
    commitment.habit_kind = habits.kind_name(alt)
    commitment.target = habits.kind_target(alt)
    _start_window(commitment, today)

    focus = get_focus(db, user)
    if focus is None:
        focus = CurrentFocus(user_id=user.id, started_at=today, consecutive_days=0)
        db.add(focus)
    _apply_kind(focus, alt)
    db.flush()
    return commitment


# ---------------------------------------------------------------------------
# Level-up
# ---------------------------------------------------------------------------

def count_hits(records: Iterable[DailyMomentumRecord], habit_key: str) -> int:
    return sum(
        1 for r in records
        if r.checkin_type == CheckinType.real
        and r.primary_habit_key == habit_key
        and r.primary_done
    )


def _window(records: Iterable[DailyMomentumRecord], today: date) -> list[DailyMomentumRecord]:
    """The last LEVEL_UP_WINDOW_DAYS records on or before today, newest first."""
    eligible = [r for r in records if r.date <= today]
    eligible.sort(key=lambda r: r.date, reverse=True)
    return eligible[: settings.LEVEL_UP_WINDOW_DAYS]


def evaluate_level_up(
    records_last7: Iterable[DailyMomentumRecord],
    current_habit: str,
    account_age: int,
    last_prompt_date: Optional[date],
    today: date,
    last_level_up: Optional[date] = None,
) -> LevelUpDecision:
    """
    Pure eligibility decision. Cooldown is reported apart from missing hits
    and runs from the later of the last prompt and the last target change.
    """
    if account_age < settings.LEVEL_UP_MIN_ACCOUNT_AGE:
        return LevelUpDecision(
            eligible=False,
            reason=LevelUpReason.ACCOUNT_TOO_NEW,
            days_remaining=settings.LEVEL_UP_MIN_ACCOUNT_AGE - account_age,
        )

    cooldown_from = [d for d in (last_prompt_date, last_level_up) if d is not None]
    if cooldown_from:
        since = days_between(max(cooldown_from), today)
        if since < settings.LEVEL_UP_COOLDOWN_DAYS:
            return LevelUpDecision(
                eligible=False,
                reason=LevelUpReason.COOLDOWN,
                days_remaining=settings.LEVEL_UP_COOLDOWN_DAYS - since,
            )

    window = _window(records_last7, today)
    if not window:
        return LevelUpDecision(eligible=False, reason=LevelUpReason.NO_RECENT_DATA)

    hits = count_hits(window, current_habit)
    if hits < settings.LEVEL_UP_REQUIRED_HITS:
        return LevelUpDecision(
            eligible=False,
            reason=LevelUpReason.INSUFFICIENT_HITS,
            days_hit=hits,
            days_remaining=settings.LEVEL_UP_REQUIRED_HITS - hits,
        )
    return LevelUpDecision(eligible=True, reason=LevelUpReason.ELIGIBLE, days_hit=hits)


def _recent_records(db: Session, user: User, today: date) -> list[DailyMomentumRecord]:
    return (
        db.query(DailyMomentumRecord)
        .filter(DailyMomentumRecord.user_id == user.id, DailyMomentumRecord.date <= today)
        .order_by(DailyMomentumRecord.date.desc())
        .limit(settings.LEVEL_UP_WINDOW_DAYS)
        .all()
    )


def get_prompt(db: Session, user: User) -> Optional[LevelUpPrompt]:
    return db.query(LevelUpPrompt).filter(LevelUpPrompt.user_id == user.id).first()


def _get_or_create_prompt(db: Session, user: User) -> LevelUpPrompt:
    prompt = get_prompt(db, user)
    if prompt is None:
        prompt = LevelUpPrompt(
            user_id=user.id,
            pending=False,
            times_offered=0,
            times_accepted=0,
            times_declined=0,
        )
        prompt.decline_reasons = []
        db.add(prompt)
    return prompt


def level_up_eligibility(db: Session, user: User, today: date) -> LevelUpDecision:
    """Gather inputs and decide, without recording anything."""
    anchor = require_first_checkin_date(user)
    prompt = get_prompt(db, user)
    pending = bool(prompt and prompt.pending)
    focus = get_focus(db, user)
    if focus is None:
        return LevelUpDecision(eligible=False, reason=LevelUpReason.NO_FOCUS, pending=pending)

    decision = evaluate_level_up(
        _recent_records(db, user, today),
        focus.habit_key,
        account_age_days(anchor, today),
        prompt.last_shown if prompt else None,
        today,
        focus.last_level_up_at,
    )
    decision.pending = pending
    nxt = habits.next_level(focus_kind(focus))
    if nxt is not None:
        decision.next_target = habits.kind_target(nxt)
    elif decision.eligible:
        decision.eligible = False
        decision.reason = LevelUpReason.NO_NEXT_LEVEL
    return decision


def check_level_up(db: Session, user: User, today: date) -> LevelUpDecision:
    """Decide and, when eligible, record that the prompt was shown today."""
    decision = level_up_eligibility(db, user, today)
    if decision.eligible:
        prompt = _get_or_create_prompt(db, user)
        prompt.last_shown = today
        prompt.times_offered = (prompt.times_offered or 0) + 1
        prompt.pending = True
        decision.pending = True
        db.flush()
        logger.info("Level-up offered to %s (%d days hit)", user.email, decision.days_hit)
    return decision


def _require_pending(db: Session, user: User) -> LevelUpPrompt:
    prompt = get_prompt(db, user)
    if prompt is None or not prompt.pending:
        raise LevelUpNotPendingError(user.email)
    return prompt


def _update_proven_target(db: Session, user: User, focus: CurrentFocus, today: date) -> None:
    """Advance lastProvenTarget to the current target if it was held >= 5 of 7 days."""
    if focus.target is None:
        return
    hits = count_hits(_recent_records(db, user, today), focus.habit_key)
    if hits >= settings.LEVEL_UP_REQUIRED_HITS:
        focus.last_proven_target = max(focus.last_proven_target or 0, focus.target)


def _validate_target(minutes: int) -> None:
    if minutes not in habits.TARGET_CHOICES:
        raise InvalidTargetError(minutes, "not one of the offered targets")


def accept_level_up(
    db: Session,
    user: User,
    today: date,
    new_target: Optional[int] = None,
) -> LevelUpOutcome:
    prompt = _require_pending(db, user)
    focus = require_focus(db, user)
    kind = focus_kind(focus)
    if not isinstance(kind, habits.Movement):
        raise NoNextLevelError(focus.habit_key)

    if new_target is not None:
        _validate_target(new_target)
        if new_target <= kind.minutes:
            raise InvalidTargetError(new_target, f"must be above the current {kind.minutes} minutes")
        nxt: habits.HabitKind = habits.Movement(new_target)
    else:
        candidate = habits.next_level(kind)
        if candidate is None:
            raise NoNextLevelError(focus.habit_key)
        nxt = candidate

    from_target = focus.target
    _update_proven_target(db, user, focus, today)
    _apply_kind(focus, nxt)
    focus.last_level_up_at = today
    focus.consecutive_days = 0

    commitment = _write_commitment(db, user, nxt, CommitmentStatus.accepted, today)
    prompt.pending = False
    prompt.times_accepted = (prompt.times_accepted or 0) + 1
    record_event(
        db, user, EventType.LEVEL_UP, today,
        habit_key=focus.habit_key,
        meta={"fromTarget": from_target, "toTarget": focus.target, "level": focus.level},
    )
    db.flush()
    logger.info("%s leveled up %s -> %s", user.email, from_target, focus.target)
    return LevelUpOutcome(
        focus=focus,
        commitment=commitment,
        reward=reward_payload(RewardEvent.LEVEL_UP),
        prompt=prompt,
    )


def decline_level_up(
    db: Session,
    user: User,
    today: date,
    reason: Optional[str],
    next_step: str,
) -> LevelUpOutcome:
    prompt = _require_pending(db, user)
    focus = require_focus(db, user)

    prompt.pending = False
    prompt.times_declined = (prompt.times_declined or 0) + 1
    prompt.decline_reasons = prompt.decline_reasons + [
        {"date": date_key(today), "reason": reason, "nextStep": next_step}
    ]

    outcome = LevelUpOutcome(focus=focus, prompt=prompt)
    if next_step == NextStep.STICK_CURRENT:
        _update_proven_target(db, user, focus, today)
        focus.last_level_up_at = today
    elif next_step == NextStep.TRY_DIFFERENT:
        outcome.moved_to_stack = archive_focus(db, user, focus, today)
        outcome.focus = None
    db.flush()
    logger.info("%s declined level-up (%s)", user.email, next_step)
    return outcome


def adjust_target(db: Session, user: User, today: date, minutes: int) -> LevelUpOutcome:
    """Slider path: move a movement target to any offered value, up or down."""
    focus = require_focus(db, user)
    kind = focus_kind(focus)
    if not isinstance(kind, habits.Movement):
        raise InvalidTargetError(minutes, "only movement habits have a minutes target")
    _validate_target(minutes)
    if minutes == kind.minutes:
        raise InvalidTargetError(minutes, "same as the current target")

    from_target = focus.target
    _update_proven_target(db, user, focus, today)
    new_kind = habits.Movement(minutes)
    _apply_kind(focus, new_kind)
    focus.last_level_up_at = today
    focus.consecutive_days = 0
    commitment = _write_commitment(db, user, new_kind, CommitmentStatus.accepted, today)

    prompt = get_prompt(db, user)
    increased = minutes > (from_target or 0)
    if prompt is not None and prompt.pending:
        prompt.pending = False
        if increased:
            prompt.times_accepted = (prompt.times_accepted or 0) + 1
    if increased:
        record_event(
            db, user, EventType.LEVEL_UP, today,
            habit_key=focus.habit_key,
            meta={"fromTarget": from_target, "toTarget": minutes, "level": focus.level},
        )
    db.flush()
    return LevelUpOutcome(
        focus=focus,
        commitment=commitment,
        reward=reward_payload(RewardEvent.LEVEL_UP) if increased else None,
        prompt=prompt,
    )
