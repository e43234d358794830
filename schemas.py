from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def check_recurrence_fields(
    interval_months: Optional[int],
    interval_weeks: Optional[int],
    weekday: Optional[int],
) -> None:
    if interval_weeks is not None and interval_months is not None:
        raise ValueError("Use either a month interval or a week interval, not both")
    if (interval_weeks is None) != (weekday is None):
        raise ValueError("Weekly items need both a week interval and a weekday")


class BudgetIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime


class BudgetItemIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=60)
    amount: int = Field(..., ge=0)
    is_recurring: bool = False
    start_month: str = Field(..., pattern=MONTH_PATTERN)
    end_month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    interval_months: Optional[int] = Field(default=None, ge=1, le=12)
    interval_weeks: Optional[int] = Field(default=None, ge=1, le=52)
    weekday: Optional[int] = Field(default=None, ge=1, le=7)
    anchor_day: Optional[int] = Field(default=None, ge=1, le=31)
    notes: Optional[str] = None
    emoji: Optional[str] = Field(default=None, max_length=8)

    @model_validator(mode="after")
    def _check_item(self) -> "BudgetItemIn":
        if self.end_month is not None and self.end_month < self.start_month:
            raise ValueError("End month must not be before start month")
        if self.is_recurring:
            check_recurrence_fields(
                self.interval_months, self.interval_weeks, self.weekday
            )
        return self


class BudgetItemUpdate(BaseModel):
    """Partial update; only fields present in the payload are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=120)
    category: Optional[str] = Field(default=None, min_length=1, max_length=60)
    amount: Optional[int] = Field(default=None, ge=0)
    is_recurring: Optional[bool] = None
    start_month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    end_month: Optional[str] = Field(default=None, pattern=MONTH_PATTERN)
    interval_months: Optional[int] = Field(default=None, ge=1, le=12)
    interval_weeks: Optional[int] = Field(default=None, ge=1, le=52)
    weekday: Optional[int] = Field(default=None, ge=1, le=7)
    anchor_day: Optional[int] = Field(default=None, ge=1, le=31)
    notes: Optional[str] = None
    emoji: Optional[str] = Field(default=None, max_length=8)

    @model_validator(mode="after")
    def _check_required_fields(self) -> "BudgetItemUpdate":
        for name in ("title", "category", "amount", "is_recurring", "start_month"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class BudgetItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    budget_id: int
    title: str
    category: str
    emoji: Optional[str]
    notes: Optional[str]
    amount: int
    is_recurring: bool
    start_month: str
    end_month: Optional[str]
    interval_months: Optional[int]
    interval_weeks: Optional[int]
    weekday: Optional[int]
    anchor_day: Optional[int]


class BudgetOverrideIn(BaseModel):
    """Upsert payload for one (item, month) override.

    Leaving out all of ``override_amount``, ``skip`` and ``note`` clears the
    override. Sending them as null counts as setting them.
    """

    budget_item_id: int
    month: str = Field(..., pattern=MONTH_PATTERN)
    override_amount: Optional[int] = Field(default=None, ge=0)
    skip: Optional[bool] = None
    note: Optional[str] = None

    def clears(self) -> bool:
        return not ({"override_amount", "skip", "note"} & self.model_fields_set)


class BudgetOverrideOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    budget_item_id: int
    month: str
    override_amount: Optional[int]
    skip: bool
    note: Optional[str]


class OccurrenceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class MonthBucketOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    total: int
    items: list[OccurrenceOut]


class BudgetRangeOut(BaseModel):
    months: list[MonthBucketOut]
