from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from models import BudgetItem
from months import (
    add_months,
    days_in_month,
    diff_months,
    first_day,
    last_day,
    month_of,
)


@dataclass(frozen=True)
class OneOff:
    anchor_day: Optional[int] = None


@dataclass(frozen=True)
class MonthlyEvery:
    months: int
    anchor_day: Optional[int] = None


@dataclass(frozen=True)
class WeeklyEvery:
    weeks: int
    weekday: int  # ISO: 1 = Monday, 7 = Sunday


Rule = Union[OneOff, MonthlyEvery, WeeklyEvery]


@dataclass(frozen=True)
class Hit:
    month: str
    day: int


def rule_for(item: BudgetItem) -> Rule:
    if not item.is_recurring:
        return OneOff(anchor_day=item.anchor_day)
    if item.interval_weeks and item.weekday:
        return WeeklyEvery(weeks=item.interval_weeks, weekday=item.weekday)
    # A dangling week interval still suppresses the month interval.
    months = 1 if item.interval_weeks else (item.interval_months or 1)
    return MonthlyEvery(months=months, anchor_day=item.anchor_day)


def clamp_day(month: str, anchor_day: Optional[int]) -> int:
    dim = days_in_month(month)
    if anchor_day is None or anchor_day > dim:
        return dim
    return anchor_day


def _one_off_hits(
    item: BudgetItem, rule: OneOff, from_month: str, to_month: str
) -> list[Hit]:
    if from_month <= item.start_month <= to_month:
        return [Hit(item.start_month, clamp_day(item.start_month, rule.anchor_day))]
    return []


def _monthly_hits(
    item: BudgetItem, rule: MonthlyEvery, from_month: str, to_month: str
) -> list[Hit]:
    interval = rule.months
    last = min(item.end_month or to_month, to_month)

    # Python's % already yields a non-negative remainder for a positive interval.
    remainder = diff_months(item.start_month, from_month) % interval
    current = from_month
    if remainder:
        current = add_months(from_month, interval - remainder)

    hits: list[Hit] = []
    while current <= last:
        if current >= item.start_month:
            hits.append(Hit(current, clamp_day(current, rule.anchor_day)))
        current = add_months(current, interval)
    return hits


def _weekly_hits(
    item: BudgetItem, rule: WeeklyEvery, from_month: str, to_month: str
) -> list[Hit]:
    begin = max(first_day(from_month), first_day(item.start_month))
    stop = last_day(min(item.end_month or to_month, to_month)).toordinal()
    stride = 7 * rule.weeks

    ordinal = begin.toordinal() + (rule.weekday - begin.isoweekday()) % 7
    hits: list[Hit] = []
    while ordinal <= stop:
        current = date.fromordinal(ordinal)
        month = month_of(current)
        if from_month <= month <= to_month:
            hits.append(Hit(month, current.day))
        ordinal += stride
    return hits


def expand(
    item: BudgetItem,
    from_month: str,
    to_month: str,
    rule: Optional[Rule] = None,
) -> list[Hit]:
    """Months (and days) at which ``item`` occurs inside ``[from_month, to_month]``.

    Hits are returned in chronological order. An inverted range, an item that
    starts after ``to_month`` or one that ends before ``from_month`` yields no
    hits.
    """
    if from_month > to_month:
        return []
    if item.start_month > to_month:
        return []
    if item.end_month is not None and item.end_month < from_month:
        return []

    rule = rule or rule_for(item)
    if isinstance(rule, OneOff):
        return _one_off_hits(item, rule, from_month, to_month)
    if isinstance(rule, WeeklyEvery):
        return _weekly_hits(item, rule, from_month, to_month)
    return _monthly_hits(item, rule, from_month, to_month)
