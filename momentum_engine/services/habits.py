"""
Habit kinds.

A focus habit is one of a closed set of variants. Legacy string keys
("walk_12min", "hydration", ...) are parsed once by `resolve_habit` when a
focus or commitment is created; the variant is then persisted as
(habit_kind, target) and rebuilt with `habit_from_row`.

Only Movement has a progression ladder; every other kind sits at level 1.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

MOVEMENT_LADDER: tuple[int, ...] = (10, 12, 15, 20, 25, 30)

# Values offered by the level-up slider when adjusting a movement target.
TARGET_CHOICES: tuple[int, ...] = (1, 2, 3, 4, 5, 7, 10, 12, 15, 20, 25, 30, 35, 40, 45, 60)

_MINUTES_RE = re.compile(r"(\d+)\s*min")

# Behavior names as submitted on a check-in.
BEHAVIOR_HYDRATION = "Hydration"
BEHAVIOR_PROTEIN = "Protein"
BEHAVIOR_SLEEP = "Sleep"
BEHAVIOR_MOVEMENT = "Movement"

_SATISFIED_RATINGS = {"solid", "elite"}


@dataclass(frozen=True)
class Movement:
    minutes: int


@dataclass(frozen=True)
class Hydration:
    pass


@dataclass(frozen=True)
class Protein:
    pass


@dataclass(frozen=True)
class Sleep:
    pass


@dataclass(frozen=True)
class EatingPattern:
    pass


@dataclass(frozen=True)
class Custom:
    label: str


HabitKind = Union[Movement, Hydration, Protein, Sleep, EatingPattern, Custom]

_SIMPLE_KINDS: dict[str, HabitKind] = {
    "hydration": Hydration(),
    "protein": Protein(),
    "sleep": Sleep(),
    "eating_pattern": EatingPattern(),
}


def resolve_habit(habit_key: str, label: Optional[str] = None) -> HabitKind:
    key = (habit_key or "").strip().lower()
    if key.startswith(("walk", "movement")):
        match = _MINUTES_RE.search(key)
        return Movement(int(match.group(1)) if match else MOVEMENT_LADDER[0])
    for prefix, simple in _SIMPLE_KINDS.items():
        if key.startswith(prefix):
            return simple
    return Custom(label or habit_key)


def kind_name(kind: HabitKind) -> str:
    if isinstance(kind, Movement):
        return "movement"
    if isinstance(kind, Custom):
        return "custom"
    for name, simple in _SIMPLE_KINDS.items():
        if kind == simple:
            return name
    raise ValueError(f"Unknown habit kind: {kind!r}")


def kind_target(kind: HabitKind) -> Optional[int]:
    return kind.minutes if isinstance(kind, Movement) else None


def habit_from_row(habit_kind: str, target: Optional[int], label: str) -> HabitKind:
    """Rebuild the variant from its persisted (habit_kind, target, habit) columns."""
    if habit_kind == "movement":
        return Movement(target or MOVEMENT_LADDER[0])
    if habit_kind in _SIMPLE_KINDS:
        return _SIMPLE_KINDS[habit_kind]
    return Custom(label)


def habit_key_for(kind: HabitKind) -> str:
    if isinstance(kind, Movement):
        return f"walk_{kind.minutes}min"
    if isinstance(kind, Custom):
        return re.sub(r"[^a-z0-9]+", "_", kind.label.lower()).strip("_") or "custom"
    return kind_name(kind)


def habit_label_for(kind: HabitKind) -> str:
    if isinstance(kind, Movement):
        return f"Walk {kind.minutes} minutes"
    if isinstance(kind, Hydration):
        return "Drink water throughout the day"
    if isinstance(kind, Protein):
        return "Hit your protein target"
    if isinstance(kind, Sleep):
        return "Protect your sleep"
    if isinstance(kind, EatingPattern):
        return "Eat structured meals"
    return kind.label


def next_level(kind: HabitKind) -> Optional[HabitKind]:
    """Next ladder rung, or None at the top or for kinds without a ladder."""
    if not isinstance(kind, Movement):
        return None
    for minutes in MOVEMENT_LADDER:
        if minutes > kind.minutes:
            return Movement(minutes)
    return None


def previous_level(kind: Movement) -> Movement:
    """Rung below the current target, never below 5 minutes."""
    lower = [m for m in MOVEMENT_LADDER if m < kind.minutes]
    if lower:
        return Movement(lower[-1])
    return Movement(max(5, min(kind.minutes, MOVEMENT_LADDER[0]) - 5))


def level_for(kind: HabitKind) -> int:
    if not isinstance(kind, Movement):
        return 1
    return max(1, sum(1 for m in MOVEMENT_LADDER if m <= kind.minutes))


def rating_for(ratings: dict[str, str], behavior: str) -> Optional[str]:
    """Case-insensitive lookup; "Energy Balance" and "energy_balance" match."""
    wanted = behavior.strip().lower().replace(" ", "_")
    for name, rating in ratings.items():
        if name.strip().lower().replace(" ", "_") == wanted:
            return rating
    return None


def is_satisfied(rating: Optional[str]) -> bool:
    return rating in _SATISFIED_RATINGS


def primary_done(
    kind: HabitKind,
    ratings: dict[str, str],
    eating_pattern: Optional[str],
    exercise_completed: bool,
    declared: bool = False,
) -> bool:
    """Whether the day's check-in satisfied the focus habit."""
    if isinstance(kind, Movement):
        return exercise_completed
    if isinstance(kind, Hydration):
        return declared or is_satisfied(rating_for(ratings, BEHAVIOR_HYDRATION))
    if isinstance(kind, Protein):
        return declared or is_satisfied(rating_for(ratings, BEHAVIOR_PROTEIN))
    if isinstance(kind, Sleep):
        return declared or is_satisfied(rating_for(ratings, BEHAVIOR_SLEEP))
    if isinstance(kind, EatingPattern):
        return declared or eating_pattern == "meals"
    return declared
