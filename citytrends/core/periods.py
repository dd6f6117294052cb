"""
periods.py — Weekly period keys shared by collectors, processor and reader.

Format: "{year}-W{week:02d}" with

    week = ceil((day_index + first_weekday + 1) / 7)

where day_index is the zero-based day of the year and first_weekday is the
weekday of January 1st counted from Sunday = 0. Weeks therefore roll over on
Sundays and the numbering is NOT ISO-8601. All three writers/readers must
use this module so their keys line up.

Dates are taken from the local calendar (naive datetime.now()).
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

PERIOD_DAYS = 7


def week_string(d: date | datetime) -> str:
    """Return the period key for *d*, e.g. date(2024, 12, 5) -> "2024-W49"."""
    if isinstance(d, datetime):
        d = d.date()
    start_of_year = date(d.year, 1, 1)
    day_index = (d - start_of_year).days
    # date.weekday() is Monday = 0; shift to Sunday = 0
    first_weekday = (start_of_year.weekday() + 1) % 7
    week = math.ceil((day_index + first_weekday + 1) / 7)
    return f"{d.year}-W{week:02d}"


def current_period(now: datetime | None = None) -> str:
    return week_string(now or datetime.now())


def previous_period(now: datetime | None = None) -> str:
    """Period of the same instant one week earlier."""
    now = now or datetime.now()
    return week_string(now - timedelta(days=PERIOD_DAYS))
