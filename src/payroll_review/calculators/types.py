"""Type definitions for the calculation pipeline."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from payroll_review.models import PayrollLineItem


@dataclass
class TimeEntrySnapshot:
    """Attendance data the calculator needs from one time entry."""

    work_date: date
    hours: Decimal
    overtime_breakdown: dict[str, Any] = field(default_factory=dict)


@dataclass
class EmployeeCalculationContext:
    """Everything needed to calculate one employee's pay for one run.

    Built by the loader, consumed by the pure calculation step.
    """

    employee_id: UUID
    employee_name: str
    base_salary: Decimal
    hire_date: date
    termination_date: date | None
    period_start: date
    period_end: date
    payment_frequency: str
    time_entries: list[TimeEntrySnapshot] = field(default_factory=list)
    bonus_amounts: list[Decimal] = field(default_factory=list)
    deduction_amounts: list[Decimal] = field(default_factory=list)

    # Populated during calculation
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0


@dataclass
class LineItemResult:
    """Computed figures for one employee, ready to be stored as a line item."""

    employee_id: UUID
    employee_name: str
    base_salary: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    overtime_hours: dict[str, Decimal]
    overtime_pay: Decimal
    bonuses: Decimal
    days_worked: Decimal
    days_absent: Decimal
    hours_worked: Decimal
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_id": str(self.employee_id),
            "base_salary": str(self.base_salary),
            "gross_salary": str(self.gross_salary),
            "total_deductions": str(self.total_deductions),
            "net_salary": str(self.net_salary),
            "overtime_hours": {k: str(v) for k, v in sorted(self.overtime_hours.items())},
            "overtime_pay": str(self.overtime_pay),
            "bonuses": str(self.bonuses),
            "days_worked": str(self.days_worked),
            "days_absent": str(self.days_absent),
            "hours_worked": str(self.hours_worked),
        }

    def compute_hash(self, engine_version: str) -> str:
        """Deterministic fingerprint of the calculated figures."""
        data = {"engine_version": engine_version, **self.to_canonical_dict()}
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()

    def apply_to(self, line_item: PayrollLineItem, engine_version: str) -> None:
        """Overwrite a stored line item's figures with this result."""
        line_item.employee_name = self.employee_name
        line_item.base_salary = self.base_salary
        line_item.gross_salary = self.gross_salary
        line_item.total_deductions = self.total_deductions
        line_item.net_salary = self.net_salary
        # JSON column: store plain numbers
        line_item.overtime_hours = {k: float(v) for k, v in self.overtime_hours.items()}
        line_item.overtime_pay = self.overtime_pay
        line_item.bonuses = self.bonuses
        line_item.days_worked = self.days_worked
        line_item.days_absent = self.days_absent
        line_item.hours_worked = self.hours_worked
        line_item.calculation_hash = self.compute_hash(engine_version)


@dataclass
class RunCalculationResult:
    """Result of calculating a run (or a subset of its employees)."""

    payroll_run_id: UUID
    results: dict[UUID, LineItemResult]  # employee_id -> result
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    error_count: int = 0
