from .user import User, AccountMetadata
from .daily_momentum import DailyMomentumRecord, CheckinType, MomentumTrend
from .current_focus import CurrentFocus
from .commitment import Commitment, CommitmentStatus
from .level_up_prompt import LevelUpPrompt
from .habit_stack import HabitStackEntry
from .exercise_session import ExerciseSession
from .habit_event import HabitEvent

__all__ = [
    "User",
    "AccountMetadata",
    "DailyMomentumRecord",
    "CheckinType",
    "MomentumTrend",
    "CurrentFocus",
    "Commitment",
    "CommitmentStatus",
    "LevelUpPrompt",
    "HabitStackEntry",
    "ExerciseSession",
    "HabitEvent",
]
