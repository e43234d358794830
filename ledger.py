"""Expands budget items into a month-by-month ledger of occurrences.

Everything here is a pure function of its inputs: items and overrides are
plain snapshots that the service layer has already fetched and filtered to
the requested range. Nothing is written back and nothing reads the clock.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Optional

from models import BudgetItem, BudgetOverride
from months import month_range
from recurrence import Hit, MonthlyEvery, Rule, WeeklyEvery, expand, rule_for


@dataclass(frozen=True)
class ResolvedOverride:
    override_amount: Optional[int] = None
    skip: bool = False
    note: Optional[str] = None
    exists: bool = False


NO_OVERRIDE = ResolvedOverride()


@dataclass(frozen=True)
class Occurrence:
    budget_item_id: int
    title: str
    category: str
    emoji: Optional[str]
    base_amount: int
    amount: int
    is_recurring: bool
    month: str
    has_override: bool
    skipped: bool
    note: Optional[str]
    interval_months: Optional[int]
    interval_weeks: Optional[int]
    weekday: Optional[int]
    day: int


@dataclass
class MonthBucket:
    month: str
    total: int = 0
    items: list[Occurrence] = field(default_factory=list)


def resolve_override(
    item_id: int, month: str, overrides: Sequence[BudgetOverride]
) -> ResolvedOverride:
    for override in overrides:
        if override.budget_item_id == item_id and override.month == month:
            return ResolvedOverride(
                override_amount=override.override_amount,
                skip=bool(override.skip),
                note=override.note,
                exists=True,
            )
    return NO_OVERRIDE


def build_occurrence(
    item: BudgetItem, rule: Rule, hit: Hit, resolved: ResolvedOverride
) -> Occurrence:
    amount = (
        resolved.override_amount
        if resolved.override_amount is not None
        else item.amount
    )
    has_override = resolved.exists and (
        resolved.override_amount is not None
        or resolved.skip
        or resolved.note is not None
    )
    return Occurrence(
        budget_item_id=item.id,
        title=item.title,
        category=item.category,
        emoji=item.emoji,
        base_amount=item.amount,
        amount=amount,
        is_recurring=bool(item.is_recurring),
        month=hit.month,
        has_override=has_override,
        skipped=resolved.skip,
        note=resolved.note,
        interval_months=rule.months if isinstance(rule, MonthlyEvery) else None,
        interval_weeks=rule.weeks if isinstance(rule, WeeklyEvery) else None,
        weekday=rule.weekday if isinstance(rule, WeeklyEvery) else None,
        day=hit.day,
    )


def intersects(item: BudgetItem, from_month: str, to_month: str) -> bool:
    return item.start_month <= to_month and (
        item.end_month is None or item.end_month >= from_month
    )


def expand_items(
    items: Sequence[BudgetItem],
    overrides_by_item: Mapping[int, Sequence[BudgetOverride]],
    from_month: str,
    to_month: str,
) -> list[MonthBucket]:
    """One bucket per month in ``[from_month, to_month]``, in order.

    Months without occurrences still get an empty bucket. Skipped occurrences
    stay in ``items`` but do not count towards ``total``. An inverted range
    produces an empty list.
    """
    if from_month > to_month:
        return []

    buckets = {month: MonthBucket(month) for month in month_range(from_month, to_month)}
    for item in items:
        if not intersects(item, from_month, to_month):
            continue
        rule = rule_for(item)
        overrides = overrides_by_item.get(item.id, ())
        for hit in expand(item, from_month, to_month, rule):
            resolved = resolve_override(item.id, hit.month, overrides)
            buckets[hit.month].items.append(
                build_occurrence(item, rule, hit, resolved)
            )

    for bucket in buckets.values():
        bucket.total = sum(occ.amount for occ in bucket.items if not occ.skipped)
    return list(buckets.values())


def month_totals(buckets: Sequence[MonthBucket]) -> dict[str, int]:
    return {bucket.month: bucket.total for bucket in buckets}
