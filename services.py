from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ledger import MonthBucket, expand_items, month_totals
from models import Budget, BudgetItem, BudgetOverride
from schemas import (
    BudgetIn,
    BudgetItemIn,
    BudgetItemUpdate,
    BudgetOverrideIn,
    check_recurrence_fields,
)

logger = logging.getLogger(__name__)

RECURRENCE_FIELDS = ("interval_months", "interval_weeks", "weekday")


class BudgetNotFound(ValueError):
    pass


class BudgetAccessDenied(ValueError):
    pass


class InvalidBudgetItem(ValueError):
    pass


def _normalize_recurrence(values: dict[str, Any]) -> dict[str, Any]:
    if not values.get("is_recurring"):
        for name in RECURRENCE_FIELDS:
            values[name] = None
    elif all(values.get(name) is None for name in RECURRENCE_FIELDS):
        values["interval_months"] = 1
    return values


class BudgetService:
    def __init__(self, session: Session, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    # Budgets

    def create_budget(self, data: BudgetIn) -> Budget:
        budget = Budget(user_id=self.user_id, name=data.name)
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        logger.info(f"budget_created: user_id={self.user_id} budget_id={budget.id}")
        return budget

    def list_budgets(self) -> list[Budget]:
        stmt = (
            select(Budget)
            .where(Budget.user_id == self.user_id, Budget.archived_at.is_(None))
            .order_by(Budget.id)
        )
        return self.session.scalars(stmt).all()

    def _require_budget(self, budget_id: int) -> Budget:
        budget = self.session.get(Budget, budget_id)
        if not budget or budget.archived_at is not None:
            raise BudgetNotFound("Budget not found")
        if budget.user_id != self.user_id:
            raise BudgetAccessDenied("Budget not found or access denied")
        return budget

    def _require_item(self, budget_id: int, item_id: int) -> BudgetItem:
        item = self.session.get(BudgetItem, item_id)
        if not item or item.budget_id != budget_id:
            raise BudgetNotFound("Item not found")
        self._require_budget(budget_id)
        return item

    # Items

    def list_items(self, budget_id: int) -> list[BudgetItem]:
        self._require_budget(budget_id)
        stmt = (
            select(BudgetItem)
            .where(BudgetItem.budget_id == budget_id)
            .order_by(BudgetItem.start_month, BudgetItem.id)
        )
        return self.session.scalars(stmt).all()

    def get_item(self, budget_id: int, item_id: int) -> BudgetItem:
        return self._require_item(budget_id, item_id)

    def create_item(self, budget_id: int, data: BudgetItemIn) -> BudgetItem:
        self._require_budget(budget_id)
        values = _normalize_recurrence(data.model_dump())
        item = BudgetItem(budget_id=budget_id, **values)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        logger.info(
            f"budget_item_created: budget_id={budget_id} item_id={item.id} "
            f"recurring={item.is_recurring}"
        )
        return item

    def update_item(
        self, budget_id: int, item_id: int, data: BudgetItemUpdate
    ) -> BudgetItem:
        item = self._require_item(budget_id, item_id)
        changes = data.model_dump(exclude_unset=True)

        merged = {
            column.key: getattr(item, column.key)
            for column in BudgetItem.__table__.columns
            if column.key in BudgetItemUpdate.model_fields
        }
        merged.update(changes)
        # Toggling recurrence without a month interval resets it.
        if (
            "is_recurring" in changes
            and changes["is_recurring"] != item.is_recurring
            and "interval_months" not in changes
        ):
            merged["interval_months"] = None
        merged = _normalize_recurrence(merged)

        end_month = merged["end_month"]
        if end_month is not None and end_month < merged["start_month"]:
            raise InvalidBudgetItem("End month must not be before start month")
        if merged["is_recurring"]:
            try:
                check_recurrence_fields(
                    merged["interval_months"],
                    merged["interval_weeks"],
                    merged["weekday"],
                )
            except ValueError as exc:
                raise InvalidBudgetItem(str(exc)) from exc

        for field, value in merged.items():
            setattr(item, field, value)
        self.session.commit()
        self.session.refresh(item)
        logger.info(
            f"budget_item_updated: budget_id={budget_id} item_id={item_id} "
            f"fields={sorted(changes)}"
        )
        return item

    def delete_item(self, budget_id: int, item_id: int) -> None:
        item = self._require_item(budget_id, item_id)
        # Overrides go with the item through the relationship cascade.
        self.session.delete(item)
        self.session.commit()
        logger.info(f"budget_item_deleted: budget_id={budget_id} item_id={item_id}")

    # Overrides

    def upsert_override(
        self, budget_id: int, data: BudgetOverrideIn
    ) -> Optional[BudgetOverride]:
        """Create or update the override for one month.

        Returns ``None`` when the payload clears the override, in which case
        any existing record is deleted.
        """
        self._require_item(budget_id, data.budget_item_id)

        if data.clears():
            self._delete_override(data.budget_item_id, data.month)
            self.session.commit()
            logger.info(
                f"budget_override_cleared: item_id={data.budget_item_id} "
                f"month={data.month}"
            )
            return None

        fields = data.model_fields_set
        stmt = select(BudgetOverride).where(
            BudgetOverride.budget_item_id == data.budget_item_id,
            BudgetOverride.month == data.month,
        )
        override = self.session.scalar(stmt)
        if override is None:
            override = BudgetOverride(
                budget_item_id=data.budget_item_id,
                month=data.month,
                override_amount=data.override_amount,
                skip=bool(data.skip),
                note=data.note,
            )
            self.session.add(override)
        else:
            if "override_amount" in fields:
                override.override_amount = data.override_amount
            if "skip" in fields:
                override.skip = bool(data.skip)
            if "note" in fields:
                override.note = data.note

        self.session.commit()
        self.session.refresh(override)
        logger.info(
            f"budget_override_upserted: item_id={data.budget_item_id} "
            f"month={data.month} skip={override.skip}"
        )
        return override

    def delete_override(self, budget_id: int, item_id: int, month: str) -> None:
        self._require_item(budget_id, item_id)
        self._delete_override(item_id, month)
        self.session.commit()

    def _delete_override(self, item_id: int, month: str) -> None:
        self.session.execute(
            delete(BudgetOverride).where(
                BudgetOverride.budget_item_id == item_id,
                BudgetOverride.month == month,
            )
        )

    def list_overrides(self, budget_id: int, item_id: int) -> list[BudgetOverride]:
        self._require_item(budget_id, item_id)
        stmt = (
            select(BudgetOverride)
            .where(BudgetOverride.budget_item_id == item_id)
            .order_by(BudgetOverride.month)
        )
        return self.session.scalars(stmt).all()

    # Range expansion

    def _items_for_range(
        self, budget_id: int, from_month: str, to_month: str
    ) -> list[BudgetItem]:
        stmt = (
            select(BudgetItem)
            .where(
                BudgetItem.budget_id == budget_id,
                BudgetItem.start_month <= to_month,
                or_(BudgetItem.end_month.is_(None), BudgetItem.end_month >= from_month),
            )
            .order_by(BudgetItem.start_month, BudgetItem.id)
        )
        return self.session.scalars(stmt).all()

    def _overrides_for_range(
        self, item_ids: list[int], from_month: str, to_month: str
    ) -> dict[int, list[BudgetOverride]]:
        if not item_ids:
            return {}
        stmt = (
            select(BudgetOverride)
            .where(
                BudgetOverride.budget_item_id.in_(item_ids),
                BudgetOverride.month.between(from_month, to_month),
            )
            .order_by(BudgetOverride.budget_item_id, BudgetOverride.month)
        )
        by_item: dict[int, list[BudgetOverride]] = {}
        for override in self.session.scalars(stmt):
            by_item.setdefault(override.budget_item_id, []).append(override)
        return by_item

    def budget_for_range(
        self, budget_id: int, from_month: str, to_month: str
    ) -> list[MonthBucket]:
        self._require_budget(budget_id)
        if from_month > to_month:
            return []

        items = self._items_for_range(budget_id, from_month, to_month)
        overrides = self._overrides_for_range(
            [item.id for item in items], from_month, to_month
        )
        buckets = expand_items(items, overrides, from_month, to_month)
        logger.info(
            f"budget_range: budget_id={budget_id} from={from_month} to={to_month} "
            f"items={len(items)} occurrences={sum(len(b.items) for b in buckets)} "
            f"total={sum(month_totals(buckets).values())}"
        )
        return buckets
