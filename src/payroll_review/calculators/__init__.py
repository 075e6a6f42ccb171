"""Payroll calculation engine."""

from payroll_review.calculators.engine import PayrollCalculator, period_window
from payroll_review.calculators.types import (
    EmployeeCalculationContext,
    LineItemResult,
    RunCalculationResult,
    TimeEntrySnapshot,
)

__all__ = [
    "PayrollCalculator",
    "period_window",
    "EmployeeCalculationContext",
    "LineItemResult",
    "RunCalculationResult",
    "TimeEntrySnapshot",
]
