"""
Calendar arithmetic for the statistics engine.

All dates are local calendar dates; no timezone conversion happens anywhere.
"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, Iterator, List

WEEKDAY_NAMES = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']
MONTH_ABBR = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
MONTH_NAMES = ['January', 'February', 'March', 'April', 'May', 'June', 'July',
               'August', 'September', 'October', 'November', 'December']

INTENSITY_LEVELS = 4


@dataclass(frozen=True)
class CalendarCell:
    date: date
    count: int
    in_year: bool
    intensity: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def week_number(day: date) -> int:
    """
    Sunday-based week of the year

    ceil((days since Jan 1 + weekday of Jan 1 + 1) / 7) with weekdays counted
    Sunday = 0, so Jan 1 is always in week 1 and weeks run Sunday to Saturday.
    Days are whole calendar days: a Saturday afternoon trip stays in the week of
    that Saturday, whereas a fractional-day count would push it into the next one.
    """
    jan1 = date(day.year, 1, 1)
    days_since_jan1 = (day - jan1).days
    jan1_weekday = (jan1.weekday() + 1) % 7
    return math.ceil((days_since_jan1 + jan1_weekday + 1) / 7)


def week_key(day: date) -> str:
    return f"{day.year}-W{week_number(day):02d}"


def month_key(day: date) -> str:
    return f"{day.year}-{day.month:02d}"


def month_label(year: int, month: int) -> str:
    return f"{MONTH_ABBR[month - 1]} {year % 100:02d}"


def short_date_label(day: date) -> str:
    return day.strftime('%d/%m/%Y')


def long_date_label(day: date) -> str:
    return f"{day.day} {MONTH_NAMES[day.month - 1]} {day.year}"


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day from start to end inclusive (nothing when end < start)."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_months(start: date, end: date) -> Iterator[date]:
    """First day of every month touched by the inclusive range."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield date(year, month, 1)
        month += 1
        if month > 12:
            year, month = year + 1, 1


def longest_streak(active_dates: Iterable[date]) -> int:
    """
    Longest run of consecutive calendar days

    Args:
        active_dates: Days with at least one trip (any order, duplicates allowed)

    Returns:
        Length of the longest run, 0 for no dates
    """
    best = 0
    current = 0
    previous = None

    for day in sorted(set(active_dates)):
        if previous is not None and (day - previous).days == 1:
            current += 1
        else:
            current = 1
        best = max(best, current)
        previous = day

    return best


def year_calendar_grid(daily_counts: Dict[date, int], year: int) -> List[List[CalendarCell]]:
    """
    Calendar heatmap of one year as weeks of seven days

    The grid starts on the Monday on or before Jan 1 and ends on the Sunday on or
    after Dec 31. Intensity is ceil(count / max * 4) against the busiest day of
    that year, 0 for days without trips.

    Args:
        daily_counts: Trips per calendar day
        year: Year to render

    Returns:
        List of weeks, each a list of 7 CalendarCell (Monday first)
    """
    first = date(year, 1, 1)
    last = date(year, 12, 31)
    grid_start = first - timedelta(days=first.weekday())
    grid_end = last + timedelta(days=6 - last.weekday())

    year_max = max((count for day, count in daily_counts.items() if day.year == year), default=0)

    cells = []
    for day in iter_days(grid_start, grid_end):
        count = daily_counts.get(day, 0)
        if count > 0 and year_max > 0:
            intensity = min(INTENSITY_LEVELS, math.ceil(count / year_max * INTENSITY_LEVELS))
        else:
            intensity = 0
        cells.append(CalendarCell(date=day, count=count, in_year=day.year == year, intensity=intensity))

    return [cells[i:i + 7] for i in range(0, len(cells), 7)]
