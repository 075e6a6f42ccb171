"""ORM models."""

from payroll_review.models.base import Base, TimestampMixin
from payroll_review.models.payroll import (
    CALCULATION_ALLOWED,
    Employee,
    PayAdjustment,
    PayrollLineItem,
    PayrollRun,
    PayrollRunStatus,
    TimeEntry,
)
from payroll_review.models.review import ValidationIssue, VerificationStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "CALCULATION_ALLOWED",
    "Employee",
    "PayAdjustment",
    "PayrollLineItem",
    "PayrollRun",
    "PayrollRunStatus",
    "TimeEntry",
    "ValidationIssue",
    "VerificationStatus",
]
