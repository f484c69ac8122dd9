"""
Tests for the daily momentum calculator (pure functions, no store).
"""
import pytest

from momentum_engine.services.momentum_calculator import (
    apply_momentum_cap,
    calculate_daily_momentum,
    calculate_daily_score,
    grades_from_ratings,
    momentum_message,
    momentum_trend,
    rating_to_grade,
    unlock_ceiling,
)


class TestGrades:
    def test_rating_vocabulary(self):
        assert rating_to_grade("elite") == 100
        assert rating_to_grade("solid") == 80
        assert rating_to_grade("not-great") == 50
        assert rating_to_grade("off") == 0

    def test_unknown_rating_is_zero(self):
        assert rating_to_grade("amazing") == 0
        assert rating_to_grade(None) == 0

    def test_grades_keep_submission_order(self):
        grades = grades_from_ratings({"Sleep": "off", "Protein": "elite"})
        assert grades == [{"name": "Sleep", "grade": 0}, {"name": "Protein", "grade": 100}]


class TestDailyScore:
    def test_mean_of_grades(self):
        assert calculate_daily_score([{"name": "a", "grade": 100}, {"name": "b", "grade": 50}]) == 75

    def test_rounds_to_nearest(self):
        assert calculate_daily_score([80, 50, 0]) == 43
        assert calculate_daily_score([100, 50, 50]) == 67

    def test_half_rounds_up(self):
        assert calculate_daily_score([0, 1]) == 1

    @pytest.mark.parametrize("grades", [None, [], [{"name": "x", "grade": "high"}], [{"name": "x"}]])
    def test_empty_or_malformed_scores_zero(self, grades):
        assert calculate_daily_score(grades) == 0

    def test_malformed_entries_are_skipped(self):
        assert calculate_daily_score([{"grade": 80}, {"grade": None}, "junk"]) == 80

    def test_clamped_to_100(self):
        assert calculate_daily_score([150, 130]) == 100
        assert calculate_daily_score([-20]) == 0


class TestUnlockRamp:
    @pytest.mark.parametrize(
        "age,ceiling",
        [(1, 20), (2, 25), (3, 30), (4, 35), (5, 40), (6, 45), (7, 50),
         (8, 55), (9, 57), (10, 59), (11, 61), (12, 63), (13, 64), (14, 65)],
    )
    def test_ceiling_by_account_age(self, age, ceiling):
        assert unlock_ceiling(age) == ceiling

    def test_uncapped_after_day_14(self):
        assert unlock_ceiling(15) is None
        assert unlock_ceiling(400) is None

    def test_age_below_one_treated_as_day_one(self):
        assert unlock_ceiling(0) == 20

    def test_cap_applies_only_above_ceiling(self):
        assert apply_momentum_cap(100, 1)[0] == 20
        assert apply_momentum_cap(10, 1)[0] == 10
        assert apply_momentum_cap(95, 30)[0] == 95


class TestMessages:
    def test_new_user_bands(self):
        assert momentum_message(10, 3) == "Building a foundation"
        assert momentum_message(40, 3) == "Finding your rhythm"
        assert momentum_message(65, 14) == "Momentum is forming"
        assert momentum_message(80, 14) == "Breakthrough progress"

    def test_veteran_bands(self):
        assert momentum_message(10, 15) == "Resetting your pace"
        assert momentum_message(59, 20) == "Gaining traction"
        assert momentum_message(79, 20) == "Heating up"
        assert momentum_message(100, 20) == "On fire"


class TestTrend:
    def test_no_previous_is_stable(self):
        assert momentum_trend(55, None) == (0, "stable")

    def test_deadband(self):
        assert momentum_trend(50, 48) == (2, "stable")
        assert momentum_trend(48, 50) == (-2, "stable")

    def test_up_and_down(self):
        assert momentum_trend(50, 47) == (3, "up")
        assert momentum_trend(20, 60) == (-40, "down")


class TestCalculateDailyMomentum:
    def test_fresh_account_day_one_is_capped(self):
        result = calculate_daily_momentum([{"name": "Protein", "grade": 100}], "walk_10min", 1)
        assert result.daily_score == 100
        assert result.momentum_score == 20
        assert result.momentum_message == "Building a foundation"
        assert result.momentum_trend == "stable"
        assert result.habit_key == "walk_10min"

    def test_delta_against_previous_real_score(self):
        result = calculate_daily_momentum([{"name": "Sleep", "grade": 80}], "sleep", 30, 60)
        assert result.momentum_score == 80
        assert result.momentum_delta == 20
        assert result.momentum_trend == "up"
        assert result.momentum_message == "On fire"
