"""
Tests for habit kinds: key parsing, ladder movement, primary-habit completion.
"""
from momentum_engine.services.habits import (
    Custom,
    EatingPattern,
    Hydration,
    Movement,
    Protein,
    Sleep,
    habit_from_row,
    habit_key_for,
    habit_label_for,
    kind_name,
    level_for,
    next_level,
    previous_level,
    primary_done,
    resolve_habit,
)


class TestResolveHabit:
    def test_walk_keys_parse_minutes(self):
        assert resolve_habit("walk_12min") == Movement(12)
        assert resolve_habit("movement_25min") == Movement(25)

    def test_walk_without_minutes_defaults(self):
        assert resolve_habit("walk") == Movement(10)

    def test_simple_kinds(self):
        assert resolve_habit("hydration") == Hydration()
        assert resolve_habit("protein_target") == Protein()
        assert resolve_habit("Sleep") == Sleep()
        assert resolve_habit("eating_pattern") == EatingPattern()

    def test_unknown_key_is_custom(self):
        assert resolve_habit("journaling", "Journal nightly") == Custom("Journal nightly")
        assert resolve_habit("stretching") == Custom("stretching")

    def test_row_round_trip(self):
        kind = Movement(15)
        rebuilt = habit_from_row(kind_name(kind), 15, habit_label_for(kind))
        assert rebuilt == kind
        assert habit_from_row("custom", None, "Cold showers") == Custom("Cold showers")


class TestKeysAndLabels:
    def test_movement(self):
        assert habit_key_for(Movement(20)) == "walk_20min"
        assert habit_label_for(Movement(20)) == "Walk 20 minutes"

    def test_custom_key_is_slugged(self):
        assert habit_key_for(Custom("Cold Showers!")) == "cold_showers"


class TestLadder:
    def test_next_level(self):
        assert next_level(Movement(10)) == Movement(12)
        assert next_level(Movement(11)) == Movement(12)
        assert next_level(Movement(25)) == Movement(30)

    def test_top_of_ladder(self):
        assert next_level(Movement(30)) is None
        assert next_level(Movement(45)) is None

    def test_non_movement_has_no_ladder(self):
        assert next_level(Hydration()) is None
        assert level_for(Hydration()) == 1

    def test_previous_level(self):
        assert previous_level(Movement(15)) == Movement(12)
        assert previous_level(Movement(10)) == Movement(5)

    def test_level_numbers(self):
        assert level_for(Movement(10)) == 1
        assert level_for(Movement(12)) == 2
        assert level_for(Movement(30)) == 6


class TestPrimaryDone:
    def test_movement_follows_exercise(self):
        assert primary_done(Movement(10), {}, None, exercise_completed=True)
        assert not primary_done(Movement(10), {"Movement": "elite"}, None, exercise_completed=False)

    def test_foundation_kinds_read_ratings(self):
        assert primary_done(Hydration(), {"hydration": "elite"}, None, False)
        assert primary_done(Protein(), {"Protein": "solid"}, None, False)
        assert not primary_done(Sleep(), {"Sleep": "not-great"}, None, False)

    def test_eating_pattern(self):
        assert primary_done(EatingPattern(), {}, "meals", False)
        assert not primary_done(EatingPattern(), {}, "grazing", False)

    def test_custom_needs_declaration(self):
        assert not primary_done(Custom("Journal"), {}, None, False)
        assert primary_done(Custom("Journal"), {}, None, False, declared=True)
