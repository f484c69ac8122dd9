"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*, updated: bool = False) -> list[sa.Column]:
    name = "updated_at" if updated else "created_at"
    return [
        sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _user_fk(unique: bool = False) -> sa.Column:
    return sa.Column(
        "user_id",
        sa.Integer(),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=unique,
    )


def upgrade() -> None:
    # --- ENUM types ---
    checkin_type_enum = sa.Enum("real", "gap_fill", "streak_saver", name="checkin_type_enum")
    checkin_type_enum.create(op.get_bind(), checkfirst=True)

    momentum_trend_enum = sa.Enum("up", "down", "stable", name="momentum_trend_enum")
    momentum_trend_enum.create(op.get_bind(), checkfirst=True)

    commitment_status_enum = sa.Enum(
        "offered", "accepted", "declined", "alternative_offered", "terminal", "completed",
        name="commitment_status_enum",
    )
    commitment_status_enum.create(op.get_bind(), checkfirst=True)

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # --- account_metadata ---
    op.create_table(
        "account_metadata",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(unique=True),
        sa.Column("first_checkin_date", sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_account_metadata_id", "account_metadata", ["id"])

    # --- daily_momentum ---
    op.create_table(
        "daily_momentum",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("account_age_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("checkin_type", sa.Enum(
            "real", "gap_fill", "streak_saver",
            name="checkin_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("missed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("behavior_grades", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("behavior_ratings", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("energy_balance", sa.String(16), nullable=True),
        sa.Column("eating_pattern", sa.String(16), nullable=True),
        sa.Column("daily_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("momentum_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("momentum_delta", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("momentum_trend", sa.Enum(
            "up", "down", "stable",
            name="momentum_trend_enum", create_type=False,
        ), nullable=False),
        sa.Column("momentum_message", sa.String(64), nullable=False, server_default=""),
        sa.Column("primary_habit_key", sa.String(64), nullable=False, server_default=""),
        sa.Column("primary_done", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lifetime_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_savers", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_real_check_ins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("exercise_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("exercise_target_minutes", sa.Integer(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("celebrated", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_momentum_user_date"),
    )
    op.create_index("ix_daily_momentum_id", "daily_momentum", ["id"])
    op.create_index("ix_daily_momentum_user_id", "daily_momentum", ["user_id"])
    op.create_index("ix_daily_momentum_date", "daily_momentum", ["date"])

    # --- current_focus ---
    op.create_table(
        "current_focus",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(unique=True),
        sa.Column("habit_key", sa.String(64), nullable=False),
        sa.Column("habit", sa.String(128), nullable=False),
        sa.Column("habit_kind", sa.String(32), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("target", sa.Integer(), nullable=True),
        sa.Column("started_at", sa.Date(), nullable=False),
        sa.Column("last_level_up_at", sa.Date(), nullable=True),
        sa.Column("consecutive_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_proven_target", sa.Integer(), nullable=True),
        *_timestamps(updated=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_current_focus_id", "current_focus", ["id"])

    # --- commitments ---
    op.create_table(
        "commitments",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(unique=True),
        sa.Column("status", sa.Enum(
            "offered", "accepted", "declined", "alternative_offered", "terminal", "completed",
            name="commitment_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("habit_offered", sa.String(128), nullable=False),
        sa.Column("habit_key", sa.String(64), nullable=False),
        sa.Column("habit_kind", sa.String(32), nullable=False),
        sa.Column("target", sa.Integer(), nullable=True),
        sa.Column("accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("accepted_at", sa.Date(), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column("alternative_offered", sa.String(128), nullable=True),
        sa.Column("alternative_key", sa.String(64), nullable=True),
        sa.Column("alternative_kind", sa.String(32), nullable=True),
        sa.Column("alternative_target", sa.Integer(), nullable=True),
        sa.Column("alternative_accepted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("celebrated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("offered_at", sa.Date(), nullable=False),
        *_timestamps(updated=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_commitments_id", "commitments", ["id"])

    # --- level_up_prompts ---
    op.create_table(
        "level_up_prompts",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(unique=True),
        sa.Column("pending", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_shown", sa.Date(), nullable=True),
        sa.Column("times_offered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("times_accepted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("times_declined", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("decline_reasons", sa.Text(), nullable=False, server_default="[]"),
        *_timestamps(updated=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_level_up_prompts_id", "level_up_prompts", ["id"])

    # --- habit_stack ---
    op.create_table(
        "habit_stack",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("habit_key", sa.String(64), nullable=False),
        sa.Column("habit", sa.String(128), nullable=False),
        sa.Column("habit_kind", sa.String(32), nullable=False),
        sa.Column("target", sa.Integer(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("moved_at", sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_habit_stack_id", "habit_stack", ["id"])
    op.create_index("ix_habit_stack_user_id", "habit_stack", ["user_id"])

    # --- exercise_sessions ---
    op.create_table(
        "exercise_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_exercise_sessions_id", "exercise_sessions", ["id"])
    op.create_index("ix_exercise_sessions_user_id", "exercise_sessions", ["user_id"])
    op.create_index("ix_exercise_sessions_date", "exercise_sessions", ["date"])

    # --- habit_events (append-only) ---
    op.create_table(
        "habit_events",
        sa.Column("id", sa.Integer(), nullable=False),
        _user_fk(),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("habit_key", sa.String(64), nullable=True),
        sa.Column("event_metadata", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_habit_events_id", "habit_events", ["id"])
    op.create_index("ix_habit_events_user_id", "habit_events", ["user_id"])
    op.create_index("ix_habit_events_event_type", "habit_events", ["event_type"])
    op.create_index("ix_habit_events_date", "habit_events", ["date"])


def downgrade() -> None:
    for table in (
        "habit_events",
        "exercise_sessions",
        "habit_stack",
        "level_up_prompts",
        "commitments",
        "current_focus",
        "daily_momentum",
        "account_metadata",
        "users",
    ):
        op.drop_table(table)

    sa.Enum(name="commitment_status_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="momentum_trend_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="checkin_type_enum").drop(op.get_bind(), checkfirst=True)
