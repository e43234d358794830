"""Calendar month arithmetic over ``YYYY-MM`` strings.

Inputs are assumed to be well formed; validation happens at the schema
boundary before values reach these helpers.
"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings


def parse_month(ym: str) -> tuple[int, int]:
    year, month = ym.split("-")
    return int(year), int(month)


def format_month(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def diff_months(a: str, b: str) -> int:
    """Signed number of months from ``a`` to ``b``."""
    ay, am = parse_month(a)
    by, bm = parse_month(b)
    return (by - ay) * 12 + (bm - am)


def add_months(ym: str, delta: int) -> str:
    year, month = parse_month(ym)
    total_months = year * 12 + (month - 1) + delta
    return format_month(total_months // 12, total_months % 12 + 1)


def days_in_month(ym: str) -> int:
    year, month = parse_month(ym)
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


def first_day(ym: str) -> date:
    year, month = parse_month(ym)
    return date(year, month, 1)


def last_day(ym: str) -> date:
    year, month = parse_month(ym)
    return date(year, month, days_in_month(ym))


def month_of(value: date) -> str:
    return format_month(value.year, value.month)


def month_range(from_month: str, to_month: str) -> list[str]:
    """Inclusive list of months; empty when ``from_month`` is after ``to_month``."""
    span = diff_months(from_month, to_month)
    return [add_months(from_month, i) for i in range(span + 1)]


def current_month(today: Optional[date] = None) -> str:
    if today is None:
        tz = ZoneInfo(get_settings().timezone)
        today = datetime.now(tz).date()
    return month_of(today)
