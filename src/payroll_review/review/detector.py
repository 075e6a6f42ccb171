"""Anomaly detection over a payroll run's line items.

Rules are independent and additive: each one looks at a single line item
(and, where relevant, the same employee's line item from the previous
comparable run) and may emit one finding. Several rules can fire for the
same employee. No I/O happens here.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from payroll_review.calculators.rates import (
    hourly_rate,
    round_to_unit,
    to_decimal,
    total_tier_hours,
)
from payroll_review.review.types import IssueCategory, IssueType, ValidationFinding

if TYPE_CHECKING:
    from payroll_review.models import PayrollLineItem, PayrollRun

# Blended premium used only for the human-readable overtime estimate
OVERTIME_ESTIMATE_PREMIUM = Decimal("1.15")
VARIANCE_THRESHOLD_PERCENT = Decimal("30")
FULL_PERIOD_DAYS = Decimal("22")
ABSENCE_REASON_MIN_DAYS = Decimal("5")
BONUS_REASON_GROSS_RATIO = Decimal("0.5")
LARGE_BONUS_GROSS_RATIO = Decimal("2")

DEFAULT_EMPLOYEE_NAME = "Employee"

TITLE_OVERTIME_UNPAID = "Overtime hours not paid"
TITLE_UNUSUAL_VARIANCE = "Unusual salary variance"
TITLE_FIRST_PAYROLL = "First payroll (prorata)"
TITLE_LARGE_BONUS = "Large bonus"

Rule = Callable[
    ["PayrollRun", "PayrollLineItem", "PayrollLineItem | None"],
    "ValidationFinding | None",
]


def _fmt(value: Decimal) -> str:
    """Render a quantity without trailing zeros (8.00 -> 8, 7.50 -> 7.5)."""
    return format(value.normalize(), "f")


def _name(item: PayrollLineItem) -> str:
    return item.employee_name or DEFAULT_EMPLOYEE_NAME


def check_unpaid_overtime(
    run: PayrollRun, item: PayrollLineItem, previous: PayrollLineItem | None
) -> ValidationFinding | None:
    """Overtime hours recorded but no overtime pay calculated."""
    overtime_hours = total_tier_hours(item.overtime_hours)
    overtime_pay = to_decimal(item.overtime_pay)
    if overtime_hours <= 0 or overtime_pay != 0:
        return None

    expected = overtime_hours * hourly_rate(item.base_salary) * OVERTIME_ESTIMATE_PREMIUM
    return ValidationFinding(
        issue_type=IssueType.ERROR,
        category=IssueCategory.OVERTIME,
        employee_id=item.employee_id,
        employee_name=_name(item),
        title=TITLE_OVERTIME_UNPAID,
        description=f"{_fmt(overtime_hours)}h recorded but 0 calculated",
        expected=round_to_unit(expected),
        actual=overtime_pay,
    )


def variance_reason(item: PayrollLineItem) -> str:
    """Best-guess explanation for a large variance. Advisory only."""
    days_absent = to_decimal(item.days_absent)
    bonuses = to_decimal(item.bonuses)
    gross = to_decimal(item.gross_salary)

    if days_absent > ABSENCE_REASON_MIN_DAYS:
        return f"Unpaid absences ({_fmt(days_absent)} days)"
    if bonuses > gross * BONUS_REASON_GROSS_RATIO:
        return f"Large bonus ({round_to_unit(bonuses)})"
    return "Unknown reason"


def check_unusual_variance(
    run: PayrollRun, item: PayrollLineItem, previous: PayrollLineItem | None
) -> ValidationFinding | None:
    """Net salary moved more than 30% against the previous period."""
    if previous is None:
        return None

    previous_net = to_decimal(previous.net_salary)
    if previous_net == 0:
        # Percentage change is undefined
        return None

    net = to_decimal(item.net_salary)
    variance = (net - previous_net) / previous_net * 100
    if abs(variance) <= VARIANCE_THRESHOLD_PERCENT:
        return None

    reason = variance_reason(item)
    sign = "+" if variance > 0 else ""
    return ValidationFinding(
        issue_type=IssueType.WARNING,
        category=IssueCategory.COMPARISON,
        employee_id=item.employee_id,
        employee_name=_name(item),
        title=TITLE_UNUSUAL_VARIANCE,
        description=(
            f"{sign}{variance:.1f}% vs previous {run.payment_frequency} payroll. {reason}"
        ),
        expected=round_to_unit(previous_net),
        actual=round_to_unit(net),
        reason=reason,
    )


def check_first_payroll_prorata(
    run: PayrollRun, item: PayrollLineItem, previous: PayrollLineItem | None
) -> ValidationFinding | None:
    """New employee (no previous line item) paid for less than a full period."""
    if previous is not None:
        return None

    days_worked = to_decimal(item.days_worked)
    if days_worked >= FULL_PERIOD_DAYS:
        return None

    return ValidationFinding(
        issue_type=IssueType.INFO,
        category=IssueCategory.PRORATA,
        employee_id=item.employee_id,
        employee_name=_name(item),
        title=TITLE_FIRST_PAYROLL,
        description=f"Salary calculated on {_fmt(days_worked)} days",
        actual=round_to_unit(to_decimal(item.net_salary)),
    )


def check_large_bonus(
    run: PayrollRun, item: PayrollLineItem, previous: PayrollLineItem | None
) -> ValidationFinding | None:
    """Bonus larger than twice the gross salary."""
    bonuses = to_decimal(item.bonuses)
    gross = to_decimal(item.gross_salary)
    if bonuses <= gross * LARGE_BONUS_GROSS_RATIO:
        return None

    amount = round_to_unit(bonuses)
    return ValidationFinding(
        issue_type=IssueType.INFO,
        category=IssueCategory.BONUS,
        employee_id=item.employee_id,
        employee_name=_name(item),
        title=TITLE_LARGE_BONUS,
        description=f"Bonus of {amount} (more than 2x gross salary)",
        actual=amount,
    )


RULES: tuple[Rule, ...] = (
    check_unpaid_overtime,
    check_unusual_variance,
    check_first_payroll_prorata,
    check_large_bonus,
)


def detect(
    run: PayrollRun,
    line_items: Iterable[PayrollLineItem],
    previous_by_employee: Mapping[UUID, PayrollLineItem],
) -> list[ValidationFinding]:
    """Run every rule over every line item.

    Returns a flat list; counts are derived by the caller (see ``summarize``).
    """
    findings: list[ValidationFinding] = []
    for item in line_items:
        previous = previous_by_employee.get(item.employee_id)
        for rule in RULES:
            finding = rule(run, item, previous)
            if finding is not None:
                findings.append(finding)
    return findings
