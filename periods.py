"""Period keys and boundaries used as document ids for daily, weekly and monthly data.

The week number is NOT ISO-8601. It is ``ceil((day_of_year + jan1_weekday) / 7)``
with ``day_of_year`` 1-based and ``jan1_weekday`` counting Sunday as 0, so a
week always belongs to the calendar year of the date and January 1st is
always in week 1. Stored keys depend on this formula; changing it orphans
every existing weekly document.
"""
from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

MONDAY = 0
SUNDAY = 6

END_OF_DAY = time(23, 59, 59, 999000)


def _as_date(d: date) -> date:
    return d.date() if isinstance(d, datetime) else d


def sunday_based_weekday(d: date) -> int:
    return d.isoweekday() % 7


def day_key(d: date) -> str:
    d = _as_date(d)
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def week_number(d: date) -> int:
    d = _as_date(d)
    jan1 = date(d.year, 1, 1)
    day_of_year = d.timetuple().tm_yday
    return math.ceil((day_of_year + sunday_based_weekday(jan1)) / 7)


def week_key(d: date) -> str:
    d = _as_date(d)
    return f"{d.year:04d}-W{week_number(d):02d}"


def month_key(d: date) -> str:
    d = _as_date(d)
    return f"{d.year:04d}-{d.month:02d}"


@dataclass(frozen=True)
class PeriodKeys:
    day: str
    week: str
    month: str
    year: int
    month_number: int
    day_number: int
    week_number: int


def period_keys(d: date) -> PeriodKeys:
    d = _as_date(d)
    return PeriodKeys(
        day=day_key(d),
        week=week_key(d),
        month=month_key(d),
        year=d.year,
        month_number=d.month,
        day_number=d.day,
        week_number=week_number(d),
    )


# ---------------------------
# Boundaries
# ---------------------------
def start_of_day(d: date, tz: tzinfo = timezone.utc) -> datetime:
    return datetime.combine(_as_date(d), time.min, tzinfo=tz)


def end_of_day(d: date, tz: tzinfo = timezone.utc) -> datetime:
    return datetime.combine(_as_date(d), END_OF_DAY, tzinfo=tz)


def start_of_week(d: date, week_start: int = MONDAY, tz: tzinfo = timezone.utc) -> datetime:
    """Midnight of the first day of the week holding ``d``.

    Report filing uses Monday-anchored weeks; the legacy migration uses
    Sunday-anchored ones (``week_start=SUNDAY``).
    """
    d = _as_date(d)
    offset = (d.weekday() - week_start) % 7
    return start_of_day(d - timedelta(days=offset), tz)


def end_of_week(d: date, week_start: int = MONDAY, tz: tzinfo = timezone.utc) -> datetime:
    first = start_of_week(d, week_start, tz).date()
    return end_of_day(first + timedelta(days=6), tz)


def start_of_month(d: date, tz: tzinfo = timezone.utc) -> datetime:
    d = _as_date(d)
    return start_of_day(date(d.year, d.month, 1), tz)


def end_of_month(d: date, tz: tzinfo = timezone.utc) -> datetime:
    d = _as_date(d)
    last = calendar.monthrange(d.year, d.month)[1]
    return end_of_day(date(d.year, d.month, last), tz)


def months_before(d: date, months: int = 1) -> date:
    """Same day ``months`` earlier, clamped to the end of shorter months."""
    d = _as_date(d)
    index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(d.day, calendar.monthrange(year, month)[1]))
