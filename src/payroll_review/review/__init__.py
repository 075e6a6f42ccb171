"""Anomaly detection for computed payroll runs."""

from payroll_review.review.detector import detect
from payroll_review.review.types import (
    IssueCategory,
    IssueCounts,
    IssueType,
    ValidationFinding,
    summarize,
)

__all__ = [
    "detect",
    "summarize",
    "IssueCategory",
    "IssueCounts",
    "IssueType",
    "ValidationFinding",
]
