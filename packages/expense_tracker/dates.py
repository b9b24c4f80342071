"""Date range and label helpers.

Every function takes its reference point explicitly; nothing here reads the
wall clock. Datetimes are naive local times, matching what the store holds.
Range ends are inclusive and land on the last microsecond of their day.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import TypeAlias

Clock: TypeAlias = Callable[[], datetime]
DateRange: TypeAlias = tuple[datetime, datetime]

_ONE_DAY = timedelta(days=1)
_ONE_US = timedelta(microseconds=1)

DATE_FORMAT = "%b %d, %Y"
MONTH_YEAR_FORMAT = "%B %Y"


def system_clock() -> datetime:
    return datetime.now()


def _as_date(ts: datetime | date) -> date:
    return ts.date() if isinstance(ts, datetime) else ts


def start_of_day(ts: datetime | date) -> datetime:
    return datetime.combine(_as_date(ts), time.min)


def end_of_day(ts: datetime | date) -> datetime:
    return start_of_day(_as_date(ts) + _ONE_DAY) - _ONE_US


def start_of_week(ts: datetime | date) -> datetime:
    """Monday 00:00 of the week containing ``ts``."""
    d = _as_date(ts)
    return start_of_day(d - timedelta(days=d.weekday()))


def end_of_week(ts: datetime | date) -> datetime:
    """Sunday 23:59:59.999999 of the week containing ``ts``."""
    d = _as_date(ts)
    return end_of_day(d + timedelta(days=6 - d.weekday()))


def start_of_month(ts: datetime | date) -> datetime:
    return start_of_day(_as_date(ts).replace(day=1))


def end_of_month(ts: datetime | date) -> datetime:
    d = _as_date(ts)
    first_next = (d.replace(day=28) + timedelta(days=4)).replace(day=1)
    return start_of_day(first_next) - _ONE_US


def week_range(ts: datetime | date) -> DateRange:
    return start_of_week(ts), end_of_week(ts)


def month_range(ts: datetime | date) -> DateRange:
    return start_of_month(ts), end_of_month(ts)


def days_between(start: datetime | date, end: datetime | date) -> int:
    """Whole calendar days from ``start`` to ``end`` (negative when reversed)."""
    return (_as_date(end) - _as_date(start)).days


def format_date(ts: datetime | date, pattern: str = DATE_FORMAT) -> str:
    return ts.strftime(pattern)


def month_year_label(ts: datetime | date) -> str:
    """E.g. ``"January 2024"``."""
    return format_date(ts, MONTH_YEAR_FORMAT)


def relative_date_label(ts: datetime | date, today: datetime | date) -> str:
    """``"Today"``, ``"Yesterday"`` or the formatted calendar date of ``ts``.

    Two timestamps on the same calendar day always produce the same label, so
    the label doubles as a grouping key.
    """

    d = _as_date(ts)
    ref = _as_date(today)
    if d == ref:
        return "Today"
    if d == ref - _ONE_DAY:
        return "Yesterday"
    return format_date(d)


__all__ = [
    "Clock",
    "DateRange",
    "system_clock",
    "start_of_day",
    "end_of_day",
    "start_of_week",
    "end_of_week",
    "start_of_month",
    "end_of_month",
    "week_range",
    "month_range",
    "days_between",
    "format_date",
    "month_year_label",
    "relative_date_label",
]
