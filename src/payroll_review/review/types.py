"""Finding types produced by the anomaly detector."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable
from uuid import UUID


class IssueType(str, Enum):
    """Severity of a finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    """Area of the payroll a finding concerns."""

    OVERTIME = "overtime"
    COMPARISON = "comparison"
    PRORATA = "prorata"
    DEDUCTION = "deduction"
    BONUS = "bonus"


@dataclass(frozen=True)
class ValidationFinding:
    """One anomaly detected on one employee's line item."""

    issue_type: IssueType
    category: IssueCategory
    employee_id: UUID
    employee_name: str
    title: str
    description: str
    expected: Decimal | None = None
    actual: Decimal | None = None
    # Advisory explanation (variance findings only); never a blocking condition
    reason: str | None = None

    @property
    def natural_key(self) -> tuple[UUID, str, str]:
        """Key that identifies the same finding across validation passes."""
        return (self.employee_id, self.category.value, self.title)


@dataclass(frozen=True)
class IssueCounts:
    """Aggregate counts over a list of findings."""

    total: int
    errors: int
    warnings: int
    info: int


def summarize(findings: Iterable[ValidationFinding]) -> IssueCounts:
    """Count findings by severity."""
    findings = list(findings)
    return IssueCounts(
        total=len(findings),
        errors=sum(1 for f in findings if f.issue_type == IssueType.ERROR),
        warnings=sum(1 for f in findings if f.issue_type == IssueType.WARNING),
        info=sum(1 for f in findings if f.issue_type == IssueType.INFO),
    )
