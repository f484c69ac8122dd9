"""
Calendar helpers.

Every record is keyed by the user's local calendar date as `YYYY-MM-DD`;
ISO strings of that shape sort lexicographically in date order.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from momentum_engine.core.config import settings


def today() -> date:
    return datetime.now(tz=ZoneInfo(settings.TIMEZONE)).date()


def date_key(day: date) -> str:
    return day.isoformat()


def days_between(start: date, end: date) -> int:
    """Whole calendar days from `start` to `end` (negative if end is earlier)."""
    return (end - start).days


def date_range(start: date, end: date) -> list[date]:
    """Inclusive list of dates from start to end, oldest first."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def iso_week_id(day: date) -> str:
    """ISO-8601 week identifier, e.g. "2026-W07"."""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
