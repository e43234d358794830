from ledger import (
    NO_OVERRIDE,
    ResolvedOverride,
    expand_items,
    month_totals,
    resolve_override,
)
from models import BudgetItem, BudgetOverride


def _item(item_id: int = 1, **overrides) -> BudgetItem:
    fields = dict(
        id=item_id,
        budget_id=1,
        title="Vet check",
        category="Health",
        emoji=None,
        amount=5000,
        is_recurring=True,
        start_month="2024-01",
        end_month=None,
        interval_months=3,
        interval_weeks=None,
        weekday=None,
        anchor_day=15,
    )
    fields.update(overrides)
    return BudgetItem(**fields)


def _override(item_id: int = 1, month: str = "2024-07", **fields) -> BudgetOverride:
    values = dict(override_amount=None, skip=False, note=None)
    values.update(fields)
    return BudgetOverride(budget_item_id=item_id, month=month, **values)


def test_quarterly_item_over_a_year():
    buckets = expand_items([_item()], {}, "2024-01", "2024-12")

    assert [b.month for b in buckets] == [f"2024-{m:02d}" for m in range(1, 13)]
    totals = month_totals(buckets)
    for month in ("2024-01", "2024-04", "2024-07", "2024-10"):
        assert totals[month] == 5000
    for bucket in buckets:
        if bucket.month in ("2024-01", "2024-04", "2024-07", "2024-10"):
            (occ,) = bucket.items
            assert occ.amount == 5000
            assert occ.day == 15
            assert occ.interval_months == 3
            assert occ.has_override is False
        else:
            assert bucket.items == []
            assert bucket.total == 0


def test_skipped_override_stays_listed_but_is_not_counted():
    overrides = {1: [_override(override_amount=0, skip=True)]}
    buckets = {b.month: b for b in expand_items([_item()], overrides, "2024-01", "2024-12")}

    july = buckets["2024-07"]
    (occ,) = july.items
    assert occ.amount == 0
    assert occ.skipped is True
    assert occ.has_override is True
    assert july.total == 0
    assert buckets["2024-04"].total == 5000
    assert buckets["2024-10"].total == 5000


def test_skip_without_amount_keeps_base_amount_out_of_total():
    rent = _item(item_id=1, interval_months=1, amount=3000)
    feed = _item(item_id=2, interval_months=1, amount=1200, title="Feed")
    overrides = {1: [_override(item_id=1, month="2024-02", skip=True)]}

    buckets = {b.month: b for b in expand_items([rent, feed], overrides, "2024-02", "2024-02")}
    feb = buckets["2024-02"]
    assert len(feb.items) == 2
    assert feb.items[0].amount == 3000
    assert feb.items[0].skipped is True
    assert feb.total == 1200


def test_override_amount_replaces_base_amount():
    overrides = {1: [_override(month="2024-04", override_amount=7000)]}
    buckets = {b.month: b for b in expand_items([_item()], overrides, "2024-01", "2024-06")}

    (occ,) = buckets["2024-04"].items
    assert occ.base_amount == 5000
    assert occ.amount == 7000
    assert occ.has_override is True
    assert buckets["2024-04"].total == 7000
    assert buckets["2024-01"].items[0].amount == 5000


def test_note_only_override_is_reported():
    overrides = {1: [_override(month="2024-01", note="Vaccines too")]}
    (jan,) = expand_items([_item()], overrides, "2024-01", "2024-01")

    assert jan.items[0].note == "Vaccines too"
    assert jan.items[0].has_override is True
    assert jan.total == 5000


def test_empty_override_record_counts_as_no_override():
    overrides = {1: [_override(month="2024-01")]}
    (jan,) = expand_items([_item()], overrides, "2024-01", "2024-01")
    assert jan.items[0].has_override is False


def test_override_for_another_month_is_ignored():
    overrides = {1: [_override(month="2024-02", override_amount=1)]}
    (jan,) = expand_items([_item()], overrides, "2024-01", "2024-01")
    assert jan.items[0].amount == 5000


def test_resolve_override_defaults_when_absent():
    assert resolve_override(1, "2024-01", []) == NO_OVERRIDE
    assert NO_OVERRIDE == ResolvedOverride(None, False, None, False)

    resolved = resolve_override(1, "2024-07", [_override(skip=True, note="Sold")])
    assert resolved == ResolvedOverride(None, True, "Sold", True)


def test_one_off_and_weekly_items_land_in_their_months():
    saddle = _item(
        item_id=1,
        is_recurring=False,
        interval_months=None,
        start_month="2024-02",
        anchor_day=None,
        amount=12000,
    )
    lessons = _item(
        item_id=2,
        interval_months=None,
        interval_weeks=1,
        weekday=3,
        start_month="2023-01",
        anchor_day=None,
        amount=400,
    )
    buckets = {
        b.month: b for b in expand_items([saddle, lessons], {}, "2023-02", "2024-02")
    }

    assert buckets["2023-02"].total == 4 * 400
    feb = buckets["2024-02"]
    one_off = [occ for occ in feb.items if occ.budget_item_id == 1]
    assert one_off[0].day == 29
    assert one_off[0].is_recurring is False
    assert one_off[0].interval_months is None
    weekly = [occ for occ in feb.items if occ.budget_item_id == 2]
    assert [occ.day for occ in weekly] == [7, 14, 21, 28]
    assert all(occ.interval_weeks == 1 and occ.weekday == 3 for occ in weekly)
    assert feb.total == 12000 + 4 * 400


def test_items_outside_window_are_left_out():
    items = [
        _item(item_id=1, start_month="2025-01"),
        _item(item_id=2, start_month="2022-01", end_month="2023-06"),
    ]
    buckets = expand_items(items, {}, "2024-01", "2024-12")
    assert all(bucket.items == [] for bucket in buckets)


def test_inverted_range_returns_no_months():
    assert expand_items([_item()], {}, "2024-12", "2024-01") == []


def test_expansion_is_repeatable():
    items = [_item(item_id=1), _item(item_id=2, interval_months=1, amount=250)]
    overrides = {1: [_override(override_amount=10, note="Discount")]}

    first = expand_items(items, overrides, "2024-01", "2025-12")
    second = expand_items(items, overrides, "2024-01", "2025-12")
    assert first == second
