"""
Calendar helpers for the schedule grid.
Day ranges for week/month views, period labels, and time-of-day arithmetic.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from .types import DayColumn, ViewMode


MINUTES_PER_DAY = 24 * 60

MONTH_SHORT_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def _day_column(day: date, week_index: int) -> DayColumn:
    weekday = day.weekday()
    return DayColumn(
        date=day,
        weekday=weekday,
        week_index=week_index,
        is_weekend=weekday >= 5,
        day_of_month=day.day,
        month_name=MONTH_SHORT_NAMES[day.month - 1],
    )


def get_week_start(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def get_week_end(day: date) -> date:
    """Sunday of the week containing ``day``."""
    return get_week_start(day) + timedelta(days=6)


def is_same_week(day1: date, day2: date) -> bool:
    return get_week_start(day1) == get_week_start(day2)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def build_days_range(mode: Union[ViewMode, str], anchor_date: date) -> list[DayColumn]:
    """
    Build the ordered day columns for a week or month view.

    week: the 7 days of the Monday-starting week containing anchor_date.
    month: every day of anchor_date's month, week_index bumped at each Monday after the 1st.
    """
    mode = ViewMode(mode)

    if mode == ViewMode.WEEK:
        monday = get_week_start(anchor_date)
        return [_day_column(monday + timedelta(days=i), 0) for i in range(7)]

    days = []
    week_index = 0
    for day_number in range(1, last_day_of_month(anchor_date.year, anchor_date.month) + 1):
        current = anchor_date.replace(day=day_number)
        if current.weekday() == 0 and day_number > 1:
            week_index += 1
        days.append(_day_column(current, week_index))
    return days


def format_period_label(mode: Union[ViewMode, str], anchor_date: date) -> str:
    """'dd.mm-dd.mm.yyyy' for a week, 'Month yyyy' for a month."""
    mode = ViewMode(mode)
    if mode == ViewMode.WEEK:
        days = build_days_range(ViewMode.WEEK, anchor_date)
        first, last = days[0].date, days[-1].date
        return f"{first:%d.%m}-{last:%d.%m}.{last.year}"
    return f"{MONTH_NAMES[anchor_date.month - 1]} {anchor_date.year}"


def shift_anchor(mode: Union[ViewMode, str], anchor_date: date, step: int) -> date:
    """Move the anchor by ``step`` weeks or months (negative goes back)."""
    mode = ViewMode(mode)
    if mode == ViewMode.WEEK:
        return anchor_date + timedelta(days=7 * step)

    month_index = anchor_date.month - 1 + step
    year = anchor_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(anchor_date.day, last_day_of_month(year, month))
    return date(year, month, day)


def previous_period_bounds(mode: Union[ViewMode, str], anchor_date: date) -> tuple[date, date]:
    """Date bounds of the period right before the one containing anchor_date."""
    mode = ViewMode(mode)
    if mode == ViewMode.WEEK:
        prev_days = build_days_range(ViewMode.WEEK, anchor_date - timedelta(days=7))
        return prev_days[0].date, prev_days[-1].date

    first_of_month = anchor_date.replace(day=1)
    prev_end = first_of_month - timedelta(days=1)
    return prev_end.replace(day=1), prev_end


def time_to_minutes(value: Union[time, str]) -> int:
    """Minute of day for a time or an 'HH:MM[:SS]' string."""
    if isinstance(value, str):
        parts = value.split(":")
        return int(parts[0]) * 60 + int(parts[1])
    return value.hour * 60 + value.minute


def calculate_total_minutes(start: Union[time, str], end: Union[time, str]) -> int:
    """Shift length in minutes; an end before the start wraps past midnight."""
    start_minutes = time_to_minutes(start)
    end_minutes = time_to_minutes(end)
    if end_minutes >= start_minutes:
        return end_minutes - start_minutes
    return (MINUTES_PER_DAY - start_minutes) + end_minutes


def format_minutes_to_hours(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    if hours == 0 and mins == 0:
        return "0h"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_partner_time(now: Optional[datetime], tz_name: str) -> datetime:
    """Aware datetime in the partner's timezone. Naive input is taken as UTC."""
    now = now or _utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name))


def today_in_timezone(tz_name: str, now: Optional[datetime] = None) -> date:
    return to_partner_time(now, tz_name).date()


def shift_start_at(shift_date: date, start: time, tz_name: str) -> datetime:
    return datetime.combine(shift_date, start, tzinfo=ZoneInfo(tz_name))


def shift_end_at(shift_date: date, start: time, end: time, tz_name: str) -> datetime:
    """Scheduled end; overnight shifts end on the following day."""
    end_day = shift_date if time_to_minutes(end) >= time_to_minutes(start) else shift_date + timedelta(days=1)
    return datetime.combine(end_day, end, tzinfo=ZoneInfo(tz_name))


def effective_load_range(view_start: date, view_end: date, today: date, horizon_days: int) -> tuple[date, date]:
    """Union of the visible window and [today, today + horizon]."""
    horizon_end = today + timedelta(days=horizon_days)
    return min(view_start, today), max(view_end, horizon_end)


def parse_time(value: Union[time, str]) -> time:
    """Accept a time or an 'HH:MM[:SS]' string."""
    if isinstance(value, time):
        return value
    parts = [int(p) for p in value.split(":")]
    return time(*parts[:3])
