"""Payroll run, line item, and calculation input models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_review.models.base import Base, JSONType, TimestampMixin


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    CALCULATED = "calculated"
    APPROVED = "approved"
    PAID = "paid"


# Statuses where (re)calculation is allowed; approved and paid runs are final
CALCULATION_ALLOWED = frozenset({PayrollRunStatus.DRAFT, PayrollRunStatus.CALCULATED})


# ===== Calculation inputs =====


class Employee(Base, TimestampMixin):
    """Employee master record (only the fields payroll needs)."""

    __tablename__ = "employee"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    hire_date: Mapped[date] = mapped_column(Date, nullable=False)
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint("base_salary >= 0", name="employee_base_salary_check"),
        CheckConstraint(
            "termination_date IS NULL OR termination_date >= hire_date",
            name="employee_dates_check",
        ),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class TimeEntry(Base, TimestampMixin):
    """Raw attendance record (clock in/out)."""

    __tablename__ = "time_entry"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    clock_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    clock_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_hours: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    # tier label -> hours, e.g. {"rate15": 6, "rate50": 2}
    overtime_breakdown: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    __table_args__ = (
        Index("ix_time_entry_tenant_employee_clock_in", "tenant_id", "employee_id", "clock_in"),
    )


class PayAdjustment(Base, TimestampMixin):
    """One-off variable pay input (bonus or deduction) targeted at a run."""

    __tablename__ = "pay_adjustment"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.id", ondelete="CASCADE"),
        nullable=False,
    )
    adjustment_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "adjustment_type IN ('bonus', 'deduction')",
            name="pay_adjustment_type_check",
        ),
        CheckConstraint("amount >= 0", name="pay_adjustment_amount_check"),
    )


# ===== Payroll Runs =====


class PayrollRun(Base, TimestampMixin):
    """One payroll period for one tenant."""

    __tablename__ = "payroll_run"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    run_number: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_frequency: Mapped[str] = mapped_column(String(20), nullable=False, default="monthly")
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    __table_args__ = (
        CheckConstraint(
            "payment_frequency IN ('daily', 'weekly', 'biweekly', 'monthly')",
            name="payroll_run_frequency_check",
        ),
        CheckConstraint(
            "status IN ('draft', 'calculated', 'approved', 'paid')",
            name="payroll_run_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_run_dates_check"),
        Index(
            "ix_payroll_run_tenant_frequency_start",
            "tenant_id",
            "payment_frequency",
            "period_start",
        ),
    )

    # Relationships
    line_items: Mapped[list[PayrollLineItem]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
    )


class PayrollLineItem(Base, TimestampMixin):
    """One employee's computed result within a run."""

    __tablename__ = "payroll_line_item"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_name: Mapped[str | None] = mapped_column(String, nullable=True)
    base_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    net_salary: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    overtime_hours: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    overtime_pay: Mapped[Decimal | None] = mapped_column(
        Numeric(15, 2), nullable=True, default=Decimal("0")
    )
    bonuses: Mapped[Decimal | None] = mapped_column(
        Numeric(15, 2), nullable=True, default=Decimal("0")
    )
    days_worked: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    days_absent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )
    hours_worked: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 2), nullable=True, default=Decimal("0")
    )
    calculation_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="payroll_line_item_run_employee_key"),
        Index("ix_payroll_line_item_tenant_run", "tenant_id", "payroll_run_id"),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="line_items")
