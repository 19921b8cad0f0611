"""
Business-day arithmetic over calendar months.

A working day is any Monday-Friday; there is no holiday calendar. Every
function takes the reference date explicitly instead of reading the clock.
"""

import calendar
from datetime import date, timedelta
from typing import List, Tuple


def is_working_day(day: date) -> bool:
    """True for Monday-Friday."""
    return day.weekday() < 5


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _count_working_days(year: int, month: int, through_day: int) -> int:
    return sum(
        1 for day in range(1, through_day + 1)
        if is_working_day(date(year, month, day))
    )


def working_days_in_month(year: int, month: int) -> int:
    """
    Count the working days in a month.

    Args:
        year: Calendar year
        month: Month number, 1-12

    Returns:
        Number of Monday-Friday dates in the month
    """
    return _count_working_days(year, month, calendar.monthrange(year, month)[1])


def working_days_elapsed(year: int, month: int, as_of: date) -> int:
    """
    Count the working days of a month that have elapsed as of a date.

    Months before ``as_of``'s month are fully elapsed and months after it
    have not started. For ``as_of``'s own month the count runs from the 1st
    through ``as_of`` inclusive.
    """
    if (year, month) < (as_of.year, as_of.month):
        return working_days_in_month(year, month)
    if (year, month) > (as_of.year, as_of.month):
        return 0
    return _count_working_days(year, month, as_of.day)


def remaining_working_days(year: int, month: int, as_of: date) -> int:
    return working_days_in_month(year, month) - working_days_elapsed(year, month, as_of)


def working_days_between(start: date, end: date) -> List[date]:
    """Working days from ``start`` to ``end`` inclusive, in order."""
    days = []
    current = start
    while current <= end:
        if is_working_day(current):
            days.append(current)
        current += timedelta(days=1)
    return days


def week_bounds(day: date) -> Tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)
