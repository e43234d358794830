from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    items: Mapped[list["BudgetItem"]] = relationship(
        "BudgetItem",
        back_populates="budget",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_budgets_user", "user_id"),)


class BudgetItem(Base, TimestampMixin):
    __tablename__ = "budget_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    emoji: Mapped[Optional[str]] = mapped_column(String(8))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    start_month: Mapped[str] = mapped_column(String(7), nullable=False)
    end_month: Mapped[Optional[str]] = mapped_column(String(7))
    interval_months: Mapped[Optional[int]] = mapped_column(Integer)
    interval_weeks: Mapped[Optional[int]] = mapped_column(Integer)
    weekday: Mapped[Optional[int]] = mapped_column(Integer)
    anchor_day: Mapped[Optional[int]] = mapped_column(Integer)

    budget: Mapped["Budget"] = relationship("Budget", back_populates="items")
    overrides: Mapped[list["BudgetOverride"]] = relationship(
        "BudgetOverride",
        back_populates="item",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "end_month IS NULL OR end_month >= start_month",
            name="ck_budget_item_month_order",
        ),
        CheckConstraint(
            "interval_months IS NULL OR interval_months BETWEEN 1 AND 12",
            name="ck_budget_item_interval_months",
        ),
        CheckConstraint(
            "interval_weeks IS NULL OR interval_weeks BETWEEN 1 AND 52",
            name="ck_budget_item_interval_weeks",
        ),
        CheckConstraint(
            "weekday IS NULL OR weekday BETWEEN 1 AND 7",
            name="ck_budget_item_weekday",
        ),
        CheckConstraint(
            "anchor_day IS NULL OR anchor_day BETWEEN 1 AND 31",
            name="ck_budget_item_anchor_day",
        ),
        Index("ix_budget_items_budget_start", "budget_id", "start_month"),
    )


class BudgetOverride(Base, TimestampMixin):
    __tablename__ = "budget_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_item_id: Mapped[int] = mapped_column(
        ForeignKey("budget_items.id", ondelete="CASCADE"), nullable=False
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    override_amount: Mapped[Optional[int]] = mapped_column(Integer)
    skip: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    note: Mapped[Optional[str]] = mapped_column(Text)

    item: Mapped["BudgetItem"] = relationship(
        "BudgetItem", back_populates="overrides"
    )

    __table_args__ = (
        UniqueConstraint(
            "budget_item_id", "month", name="uq_budget_override_item_month"
        ),
        Index("ix_budget_override_item_month", "budget_item_id", "month"),
    )
