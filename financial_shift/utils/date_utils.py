"""Date manipulation utilities"""

import calendar
from datetime import date, datetime, time, timedelta

WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")  # date.weekday() order


def weekday_abbreviation(day: date) -> str:
    return WEEKDAY_ABBREVIATIONS[day.weekday()]


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length"""
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_until_max_date(from_date: date) -> int:
    """Largest month count add_months accepts from `from_date`"""
    return (date.max.year - from_date.year) * 12 + (date.max.month - from_date.month)


def days_between(start: date, end: date) -> int:
    """Signed day count from start to end"""
    return (end - start).days


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def time_window(day: date, start: time | None, end: time | None, tzinfo=None) -> tuple[datetime, datetime]:
    """
    Concrete datetime window opened on `day`.

    Missing bounds default to midnight; an end at or before the start rolls
    over to the next day (e.g. 19:00-07:00 night windows).
    """
    window_start = datetime.combine(day, start or time.min, tzinfo=tzinfo)
    window_end = datetime.combine(day, end or time.min, tzinfo=tzinfo)
    if window_end <= window_start:
        window_end += timedelta(days=1)
    return window_start, window_end


def overlap_hours(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> float:
    latest_start = max(start_a, start_b)
    earliest_end = min(end_a, end_b)
    if earliest_end <= latest_start:
        return 0.0
    return hours_between(latest_start, earliest_end)
