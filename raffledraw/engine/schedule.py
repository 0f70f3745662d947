"""Calendar helpers for laying out the weekly draws of a month."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

DRAW_WEEKDAY = calendar.SATURDAY
"""Weekly raffles are drawn on Saturdays."""

REGISTRATION_OPENS_DAYS_BEFORE = 6
REGISTRATION_CLOSES_DAYS_BEFORE = 1


@dataclass(frozen=True)
class WeekSchedule:
    """Draw and registration window for one weekly raffle.

    Attributes
    ----------
    week : int
        1-based week index inside the month.
    draw_date : datetime
        Midnight (UTC) of the week's draw day.
    registration_start : datetime
        When registration for the week opens.
    registration_end : datetime
        When registration for the week closes.
    """

    week: int
    draw_date: datetime
    registration_start: datetime
    registration_end: datetime


def _check_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if year < 1:
        raise ValueError(f"year must be positive, got {year}")


def draw_dates_in_month(year: int, month: int) -> list[date]:
    """Return every draw day (Saturday) of ``month`` in ascending order."""

    _check_month(year, month)
    first = date(year, month, 1)
    offset = (DRAW_WEEKDAY - first.weekday()) % 7
    last_day = calendar.monthrange(year, month)[1]
    return [
        date(year, month, day)
        for day in range(1 + offset, last_day + 1, 7)
    ]


def week_count(year: int, month: int) -> int:
    """Number of weekly draws in ``month`` (always 4 or 5)."""

    return len(draw_dates_in_month(year, month))


def week_schedule(year: int, month: int, week: int) -> WeekSchedule:
    """Return the draw date and registration window for ``week`` of a month.

    Raises
    ------
    ValueError
        If the month has no ``week``-th draw day.
    """

    dates = draw_dates_in_month(year, month)
    if not 1 <= week <= len(dates):
        raise ValueError(
            f"{calendar.month_name[month]} {year} has {len(dates)} draw weeks, "
            f"week {week} does not exist"
        )
    draw_at = datetime.combine(dates[week - 1], time.min, tzinfo=timezone.utc)
    return WeekSchedule(
        week=week,
        draw_date=draw_at,
        registration_start=draw_at - timedelta(days=REGISTRATION_OPENS_DAYS_BEFORE),
        registration_end=draw_at - timedelta(days=REGISTRATION_CLOSES_DAYS_BEFORE),
    )


def default_monthly_name(year: int, month: int) -> str:
    _check_month(year, month)
    return f"Raffle {calendar.month_name[month]} {year}"


def default_weekly_name(monthly_name: str, week: int) -> str:
    return f"{monthly_name} - Week {week}"


__all__ = [
    "DRAW_WEEKDAY",
    "WeekSchedule",
    "default_monthly_name",
    "default_weekly_name",
    "draw_dates_in_month",
    "week_count",
    "week_schedule",
]
