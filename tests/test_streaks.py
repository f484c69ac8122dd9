"""
Tests for streaks, consistency and gap filling.

Pure helpers run on unsaved records; gap filling runs against the SQLite
store under a fresh user per test.
"""
from datetime import date, timedelta

import pytest

from momentum_engine.models.daily_momentum import CheckinType, DailyMomentumRecord, MomentumTrend
from momentum_engine.models.habit_event import HabitEvent
from momentum_engine.services import streaks
from momentum_engine.services.users import get_or_create_user, write_first_checkin_date

D0 = date(2091, 3, 1)


def _record(day: date, kind: CheckinType = CheckinType.real, **fields) -> DailyMomentumRecord:
    values = dict(
        date=day,
        checkin_type=kind,
        current_streak=0,
        lifetime_streak=0,
        streak_savers=0,
        total_real_check_ins=0,
        momentum_score=0,
        momentum_delta=0,
        momentum_trend=MomentumTrend.stable,
        momentum_message="",
        primary_habit_key="walk_10min",
        primary_done=True,
        daily_score=0,
        account_age_days=1,
        missed=kind != CheckinType.real,
        exercise_completed=False,
        celebrated=False,
    )
    values.update(fields)
    return DailyMomentumRecord(**values)


class TestAccountAge:
    def test_first_day_is_day_one(self):
        assert streaks.account_age_days(D0, D0) == 1
        assert streaks.account_age_days(D0, D0 + timedelta(days=9)) == 10

    def test_never_below_one(self):
        assert streaks.account_age_days(D0, D0 - timedelta(days=3)) == 1


class TestExtendStreak:
    def test_first_checkin_starts_at_one(self):
        state = streaks.extend_streak(None, None)
        assert (state.current_streak, state.lifetime_streak, state.streak_savers) == (1, 1, 0)
        assert not state.saver_earned

    def test_consecutive_real_day_continues(self):
        yesterday = _record(D0, current_streak=4, lifetime_streak=4)
        state = streaks.extend_streak(yesterday, yesterday)
        assert state.current_streak == 5
        assert state.lifetime_streak == 5

    def test_streak_saver_day_continues(self):
        saver = _record(D0, CheckinType.streak_saver, current_streak=9, lifetime_streak=9)
        assert streaks.extend_streak(saver, saver).current_streak == 10

    def test_gap_fill_day_resets(self):
        gap = _record(D0, CheckinType.gap_fill, lifetime_streak=12, streak_savers=2)
        state = streaks.extend_streak(gap, gap)
        assert state.current_streak == 1
        assert state.lifetime_streak == 12
        assert state.streak_savers == 2

    def test_saver_earned_every_seventh_day(self):
        yesterday = _record(D0, current_streak=6, lifetime_streak=6)
        state = streaks.extend_streak(yesterday, yesterday)
        assert state.current_streak == 7
        assert state.streak_savers == 1
        assert state.saver_earned

    def test_saver_bank_is_capped(self):
        yesterday = _record(D0, current_streak=27, lifetime_streak=27, streak_savers=3)
        state = streaks.extend_streak(yesterday, yesterday)
        assert state.current_streak == 28
        assert state.streak_savers == 3
        assert not state.saver_earned


class TestConsistency:
    def _real_days(self, start: date, count: int) -> list[DailyMomentumRecord]:
        return [_record(start + timedelta(days=i)) for i in range(count)]

    def test_zero_before_day_seven(self):
        records = self._real_days(D0, 6)
        assert streaks.calculate_consistency(records, 6, D0 + timedelta(days=5)) == 0

    def test_every_day_checked_in(self):
        records = self._real_days(D0, 10)
        assert streaks.calculate_consistency(records, 10, D0 + timedelta(days=9)) == 100

    def test_today_excluded_until_checked_in(self):
        # days 1-7 real, 8-9 missed, day 10 not yet checked in: 7 of 9
        records = self._real_days(D0, 7)
        records += [
            _record(D0 + timedelta(days=7), CheckinType.gap_fill),
            _record(D0 + timedelta(days=8), CheckinType.gap_fill),
        ]
        assert streaks.calculate_consistency(records, 10, D0 + timedelta(days=9)) == 78

    def test_window_capped_at_thirty_days(self):
        today = D0 + timedelta(days=59)
        records = self._real_days(today - timedelta(days=29), 30)
        assert streaks.calculate_consistency(records, 60, today) == 100

    def test_only_real_records_count(self):
        today = D0 + timedelta(days=9)
        records = [
            _record(D0 + timedelta(days=i), CheckinType.streak_saver) for i in range(10)
        ]
        assert streaks.calculate_consistency(records, 10, today) == 0


class TestMessages:
    @pytest.mark.parametrize(
        "streak,expected",
        [
            (1, "1 day streak. Keep showing up!"),
            (3, "3 day streak. Stay consistent!"),
            (7, "7 days straight. That's a full week."),
            (14, "14 day streak. Two solid weeks. Keep it going!"),
            (120, "120 days. You've built something lasting."),
        ],
    )
    def test_streak_message(self, streak, expected):
        assert streaks.streak_message(streak) == expected

    def test_missed_messages(self):
        assert streaks.missed_checkin_message(0, 40) == ""
        assert "held at 40%" in streaks.missed_checkin_message(1, 40)
        assert streaks.missed_checkin_message(3, 40).startswith("It's been 3 days")
        assert streaks.missed_checkin_message(7, 40) == "Let's rebuild. First brick back in place."


class TestFillMissedDays:
    def _seed(self, db, email, days: list[tuple[int, int, int]]):
        """days: (offset from D0, current_streak, streak_savers) for real records."""
        user = get_or_create_user(db, email)
        write_first_checkin_date(db, user, D0)
        for offset, streak, savers in days:
            db.add(_record(
                D0 + timedelta(days=offset),
                user_id=user.id,
                current_streak=streak,
                lifetime_streak=streak,
                streak_savers=savers,
                total_real_check_ins=offset + 1,
                momentum_score=45,
            ))
        db.commit()
        return user

    def test_no_history_no_gap(self, db, email):
        user = get_or_create_user(db, email)
        report = streaks.fill_missed_days(db, user, D0)
        assert not report.had_gap
        assert report.last_checkin_date is None

    def test_yesterday_checked_in_no_gap(self, db, email):
        user = self._seed(db, email, [(0, 1, 0)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=1))
        assert not report.had_gap
        assert report.frozen_momentum == 45

    def test_gap_days_are_synthesized(self, db, email):
        user = self._seed(db, email, [(0, 1, 0), (1, 2, 0)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=4))
        db.commit()

        assert report.had_gap
        assert report.days_missed == 2
        assert report.filled_dates == [D0 + timedelta(days=2), D0 + timedelta(days=3)]
        assert not report.should_reset
        for offset in (2, 3):
            row = streaks.record_for(db, user, D0 + timedelta(days=offset))
            assert row.checkin_type == CheckinType.gap_fill
            assert row.missed is True
            assert row.momentum_score == 0
            assert row.current_streak == 0
            assert row.total_real_check_ins == 2
            assert row.lifetime_streak == 2

    def test_idempotent(self, db, email):
        user = self._seed(db, email, [(0, 1, 0)])
        streaks.fill_missed_days(db, user, D0 + timedelta(days=3))
        db.commit()
        again = streaks.fill_missed_days(db, user, D0 + timedelta(days=3))
        assert again.had_gap
        assert again.filled_dates == []
        rows = streaks.records_between(db, user, D0, D0 + timedelta(days=3))
        assert len(rows) == 3

    def test_single_missed_day_spends_a_saver(self, db, email):
        user = self._seed(db, email, [(0, 7, 1)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=2))
        db.commit()

        assert report.saver_used
        row = streaks.record_for(db, user, D0 + timedelta(days=1))
        assert row.checkin_type == CheckinType.streak_saver
        assert row.current_streak == 7
        assert row.streak_savers == 0
        assert row.momentum_score == 45
        used = db.query(HabitEvent).filter(
            HabitEvent.user_id == user.id, HabitEvent.event_type == "streak_saver_used"
        ).count()
        assert used == 1

    def test_two_missed_days_never_bridged(self, db, email):
        user = self._seed(db, email, [(0, 7, 1)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=3))
        db.commit()
        assert not report.saver_used
        row = streaks.record_for(db, user, D0 + timedelta(days=1))
        assert row.checkin_type == CheckinType.gap_fill
        assert row.streak_savers == 1

    def test_held_saver_waits_for_the_next_checkin(self, db, email):
        user = self._seed(db, email, [(0, 7, 1)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=2), hold_saver=True)
        db.commit()

        assert report.saver_pending
        assert not report.saver_used
        assert report.filled_dates == []
        assert streaks.record_for(db, user, D0 + timedelta(days=1)) is None
        assert streaks.current_streak(db, user, D0 + timedelta(days=2)) == 7

    def test_held_saver_stays_banked_when_the_gap_grows(self, db, email):
        user = self._seed(db, email, [(0, 7, 1)])
        streaks.fill_missed_days(db, user, D0 + timedelta(days=2), hold_saver=True)
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=3), hold_saver=True)
        db.commit()

        assert not report.saver_pending
        assert not report.saver_used
        assert report.filled_dates == [D0 + timedelta(days=1), D0 + timedelta(days=2)]
        for offset in (1, 2):
            row = streaks.record_for(db, user, D0 + timedelta(days=offset))
            assert row.checkin_type == CheckinType.gap_fill
            assert row.streak_savers == 1
        assert streaks.current_streak(db, user, D0 + timedelta(days=3)) == 0

    def test_long_gap_flags_reset(self, db, email):
        user = self._seed(db, email, [(0, 1, 0)])
        report = streaks.fill_missed_days(db, user, D0 + timedelta(days=9))
        assert report.days_missed == 8
        assert report.should_reset

    def test_current_streak_reads_yesterday(self, db, email):
        user = self._seed(db, email, [(0, 1, 0), (1, 2, 0)])
        assert streaks.current_streak(db, user, D0 + timedelta(days=1)) == 2
        assert streaks.current_streak(db, user, D0 + timedelta(days=2)) == 2
        assert streaks.current_streak(db, user, D0 + timedelta(days=3)) == 0
