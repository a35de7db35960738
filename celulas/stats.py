"""
Prayer statistics computed from a user's list of prayer dates.

Every function takes the reference ``today`` explicitly so the same inputs
always give the same numbers; callers obtain it from :func:`local_today`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

WEEK_WINDOW_DAYS = 7
MAX_STATS_DAYS = 3650


def local_today(tz_name: str) -> date:
    """Current calendar date in the configured time zone."""
    return datetime.now(ZoneInfo(tz_name)).date()


def clamp_days(value: Optional[str | int], default: int) -> int:
    """Parse the ``days`` query parameter, falling back to ``default``."""
    try:
        days = int(value) if value is not None else default
    except (TypeError, ValueError):
        return default
    if days <= 0:
        return default
    return min(days, MAX_STATS_DAYS)


def _distinct_desc(dates: Iterable[date]) -> list[date]:
    return sorted(set(dates), reverse=True)


def streak_days(dates: Iterable[date], today: date) -> int:
    """
    Count consecutive prayer days ending today.

    A user who has not prayed today has a streak of zero.
    """
    streak = 0
    expected = today
    for day in _distinct_desc(dates):
        if day > today:
            continue
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def count_since(dates: Iterable[date], start: date, today: date) -> int:
    return sum(1 for day in set(dates) if start <= day <= today)


def average_per_week(dates: Iterable[date], today: date) -> float:
    distinct = set(dates)
    if not distinct:
        return 0.0
    first = min(distinct)
    days_since_first = max(1, (today - first).days)
    weeks = max(1.0, days_since_first / 7)
    return round(len(distinct) / weeks, 1)


def daily_history(dates: Iterable[date], today: date, days: int = WEEK_WINDOW_DAYS) -> list[dict]:
    """Per-day counts within the last ``days`` days, newest first."""
    start = today - timedelta(days=days)
    counts: dict[date, int] = {}
    for day in dates:
        if start <= day <= today:
            counts[day] = counts.get(day, 0) + 1
    return [
        {"date": day.isoformat(), "count": counts[day]}
        for day in sorted(counts, reverse=True)
    ]


def calendar_dates(dates: Iterable[date], year: int) -> list[date]:
    return sorted({day for day in dates if day.year == year})


@dataclass
class PrayerSummary:
    total_prayers: int
    recent_prayers: int
    week_prayers: int
    month_prayers: int
    prayed_today: bool
    streak_days: int
    average_per_week: float
    first_prayer_date: Optional[date] = None
    last_prayer_date: Optional[date] = None
    history: list[date] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "total_prayers": self.total_prayers,
            "recent_prayers": self.recent_prayers,
            "week_prayers": self.week_prayers,
            "month_prayers": self.month_prayers,
            "prayed_today": self.prayed_today,
            "streak_days": self.streak_days,
            "average_per_week": self.average_per_week,
            "first_prayer_date": self.first_prayer_date,
            "last_prayer_date": self.last_prayer_date,
        }


def summarize(dates: Iterable[date], today: date, days: int = 30) -> PrayerSummary:
    distinct = _distinct_desc(dates)
    recent_start = today - timedelta(days=days)
    week_start = today - timedelta(days=WEEK_WINDOW_DAYS)
    month_start = today.replace(day=1)
    return PrayerSummary(
        total_prayers=len(distinct),
        recent_prayers=count_since(distinct, recent_start, today),
        week_prayers=count_since(distinct, week_start, today),
        month_prayers=count_since(distinct, month_start, today),
        prayed_today=today in distinct,
        streak_days=streak_days(distinct, today),
        average_per_week=average_per_week(distinct, today),
        first_prayer_date=distinct[-1] if distinct else None,
        last_prayer_date=distinct[0] if distinct else None,
        history=[day for day in distinct if recent_start <= day <= today],
    )
