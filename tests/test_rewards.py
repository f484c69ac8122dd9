"""
Tests for the reward priority resolver: exactly one event per check-in,
first match in priority order wins.
"""
from datetime import date, timedelta

import pytest

from momentum_engine.models.commitment import Commitment, CommitmentStatus
from momentum_engine.services.rewards import (
    REWARD_RULES,
    RewardContext,
    RewardEvent,
    resolve_reward,
    reward_payload,
)

TODAY = date(2091, 6, 10)

PERFECT_RATINGS = {"Protein": "solid", "Hydration": "elite", "Sleep": "solid", "Movement": "elite"}


def _ctx(**overrides) -> RewardContext:
    values = dict(today=TODAY, current_streak=1, total_real_check_ins=2, primary_done=False)
    values.update(overrides)
    return RewardContext(**values)


def _commitment(expires_in: int, celebrated: bool = False) -> Commitment:
    return Commitment(
        status=CommitmentStatus.accepted,
        habit_offered="Walk 10 minutes",
        habit_key="walk_10min",
        habit_kind="movement",
        target=10,
        accepted=True,
        accepted_at=TODAY - timedelta(days=7 - expires_in),
        expires_at=TODAY + timedelta(days=expires_in),
        celebrated=celebrated,
    )


class TestPriorityOrder:
    def test_rule_order(self):
        assert [event for event, _ in REWARD_RULES] == [
            "commitment_complete",
            "return_from_break",
            "milestone_100",
            "milestone_50",
            "streak_30",
            "streak_21",
            "streak_7",
            "streak_3",
            "perfect_day",
        ]

    def test_nothing_fires(self):
        assert resolve_reward(_ctx()) is None

    def test_milestone_50_beats_streak_7(self):
        assert resolve_reward(_ctx(total_real_check_ins=50, current_streak=7)) == "milestone_50"

    def test_milestone_100(self):
        assert resolve_reward(_ctx(total_real_check_ins=100, current_streak=30)) == "milestone_100"

    def test_commitment_complete_beats_everything(self):
        ctx = _ctx(
            commitment=_commitment(expires_in=0),
            days_since_last_real=9,
            total_real_check_ins=50,
            current_streak=7,
        )
        assert resolve_reward(ctx) == "commitment_complete"

    def test_return_from_break_beats_streaks(self):
        assert resolve_reward(_ctx(days_since_last_real=7, current_streak=3)) == "return_from_break"

    @pytest.mark.parametrize("streak,event", [(3, "streak_3"), (7, "streak_7"), (21, "streak_21"), (30, "streak_30")])
    def test_streak_thresholds(self, streak, event):
        assert resolve_reward(_ctx(current_streak=streak)) == event

    def test_streak_between_thresholds(self):
        assert resolve_reward(_ctx(current_streak=8)) is None


class TestCommitmentComplete:
    def test_not_before_expiry(self):
        assert resolve_reward(_ctx(commitment=_commitment(expires_in=1))) is None

    def test_fires_after_expiry(self):
        assert resolve_reward(_ctx(commitment=_commitment(expires_in=-2))) == "commitment_complete"

    def test_once_only(self):
        assert resolve_reward(_ctx(commitment=_commitment(expires_in=0, celebrated=True))) is None

    def test_offered_commitment_never_completes(self):
        commitment = _commitment(expires_in=0)
        commitment.status = CommitmentStatus.offered
        assert resolve_reward(_ctx(commitment=commitment)) is None


class TestBreakAndPerfectDay:
    def test_six_days_is_not_a_break(self):
        assert resolve_reward(_ctx(days_since_last_real=6)) is None

    def test_perfect_day(self):
        ctx = _ctx(
            ratings=PERFECT_RATINGS,
            energy_balance="normal",
            eating_pattern="meals",
            primary_done=True,
        )
        assert resolve_reward(ctx) == "perfect_day"

    @pytest.mark.parametrize(
        "override",
        [
            {"energy_balance": "heavy"},
            {"eating_pattern": "grazing"},
            {"primary_done": False},
            {"ratings": {**PERFECT_RATINGS, "Sleep": "not-great"}},
            {"ratings": {"Protein": "elite"}},
        ],
    )
    def test_perfect_day_needs_everything(self, override):
        values = dict(
            ratings=PERFECT_RATINGS,
            energy_balance="normal",
            eating_pattern="meals",
            primary_done=True,
        )
        values.update(override)
        assert resolve_reward(_ctx(**values)) is None


class TestPayloads:
    def test_checkin_saved(self):
        payload = reward_payload(RewardEvent.CHECKIN_SAVED)
        assert payload["event"] == "checkin_saved"
        assert payload["animation"] == "pulse"
        assert payload["shareable"] is False

    def test_shareable_events(self):
        assert reward_payload(RewardEvent.COMMITMENT_COMPLETE)["shareable"] is True
        assert reward_payload(RewardEvent.STREAK_7)["shareable"] is False

    def test_level_up(self):
        payload = reward_payload(RewardEvent.LEVEL_UP)
        assert payload["animation"] == "burst"
        assert payload["intensity"] == "large"
