"""Tests for the payroll anomaly detector."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_review.models import PayrollLineItem, PayrollRun
from payroll_review.review import IssueCategory, IssueType, detect, summarize
from payroll_review.review.detector import (
    check_unusual_variance,
    variance_reason,
)


def make_run(frequency: str = "monthly") -> PayrollRun:
    return PayrollRun(
        id=uuid4(),
        tenant_id=uuid4(),
        run_number="PR-2024-02",
        period_start=date(2024, 2, 1),
        period_end=date(2024, 2, 29),
        pay_date=date(2024, 2, 29),
        payment_frequency=frequency,
        status="calculated",
    )


def make_item(**overrides) -> PayrollLineItem:
    values = {
        "id": uuid4(),
        "payroll_run_id": uuid4(),
        "employee_id": uuid4(),
        "employee_name": "Awa Ndiaye",
        "base_salary": Decimal("346660.00"),
        "gross_salary": Decimal("100000.00"),
        "total_deductions": Decimal("0"),
        "net_salary": Decimal("100000.00"),
        "overtime_hours": {},
        "overtime_pay": Decimal("0"),
        "bonuses": Decimal("0"),
        "days_worked": Decimal("22"),
        "days_absent": Decimal("0"),
    }
    values.update(overrides)
    return PayrollLineItem(**values)


class TestUnpaidOvertime:
    """Overtime hours recorded without overtime pay."""

    def test_zero_overtime_never_produces_overtime_issue(self):
        """Line items without overtime hours never yield an overtime finding."""
        items = [
            make_item(),
            make_item(overtime_hours={"rate15": 0, "rate50": 0}),
            make_item(overtime_hours={}, overtime_pay=Decimal("0")),
        ]

        findings = detect(make_run(), items, {})

        assert not [f for f in findings if f.category == IssueCategory.OVERTIME]

    def test_unpaid_overtime_produces_exactly_one_error(self):
        """Hours > 0 with zero pay yields one error/overtime finding."""
        item = make_item(overtime_hours={"rate15": 6, "rate50": 2})

        findings = detect(make_run(), [item], {})
        overtime = [f for f in findings if f.category == IssueCategory.OVERTIME]

        assert len(overtime) == 1
        finding = overtime[0]
        assert finding.issue_type == IssueType.ERROR
        assert finding.employee_id == item.employee_id
        assert finding.title == "Overtime hours not paid"
        assert finding.description == "8h recorded but 0 calculated"
        # 8h * (346660 / 173.33 = 2000) * 1.15
        assert finding.expected == Decimal("18400")
        assert finding.actual == Decimal("0")

    def test_paid_overtime_is_not_flagged(self):
        """Overtime that was paid is not an anomaly."""
        item = make_item(
            overtime_hours={"rate15": 6},
            overtime_pay=Decimal("13800.00"),
        )

        findings = detect(make_run(), [item], {})

        assert not [f for f in findings if f.category == IssueCategory.OVERTIME]

    def test_non_numeric_tier_values_count_as_zero(self):
        """Garbage tier values do not break detection."""
        item = make_item(overtime_hours={"rate15": "abc", "rate50": None, "rate75": 1.5})

        findings = detect(make_run(), [item], {})
        overtime = [f for f in findings if f.category == IssueCategory.OVERTIME]

        assert len(overtime) == 1
        assert overtime[0].description == "1.5h recorded but 0 calculated"


class TestUnusualVariance:
    """Net salary change against the previous run."""

    def test_35_percent_increase_is_flagged(self):
        """100,000 -> 135,000 yields a warning/comparison finding."""
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id, net_salary=Decimal("100000.00"))
        current = make_item(
            employee_id=employee_id,
            net_salary=Decimal("135000.00"),
            gross_salary=Decimal("140000.00"),
        )

        findings = detect(make_run(), [current], {employee_id: previous})
        variance = [f for f in findings if f.category == IssueCategory.COMPARISON]

        assert len(variance) == 1
        finding = variance[0]
        assert finding.issue_type == IssueType.WARNING
        assert finding.title == "Unusual salary variance"
        assert finding.expected == Decimal("100000")
        assert finding.actual == Decimal("135000")
        assert finding.description == "+35.0% vs previous monthly payroll. Unknown reason"

    def test_25_percent_increase_is_not_flagged(self):
        """100,000 -> 125,000 stays under the threshold."""
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id, net_salary=Decimal("100000.00"))
        current = make_item(employee_id=employee_id, net_salary=Decimal("125000.00"))

        findings = detect(make_run(), [current], {employee_id: previous})

        assert not [f for f in findings if f.category == IssueCategory.COMPARISON]

    def test_decrease_is_flagged_without_plus_sign(self):
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id, net_salary=Decimal("100000.00"))
        current = make_item(
            employee_id=employee_id,
            net_salary=Decimal("60000.00"),
            days_absent=Decimal("9"),
        )

        finding = check_unusual_variance(make_run(), current, previous)

        assert finding is not None
        assert finding.description.startswith("-40.0% vs previous monthly payroll")
        assert finding.reason == "Unpaid absences (9 days)"

    def test_zero_previous_net_does_not_fire(self):
        """The percentage is undefined when the previous net is zero."""
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id, net_salary=Decimal("0"))
        current = make_item(employee_id=employee_id, net_salary=Decimal("100000.00"))

        assert check_unusual_variance(make_run(), current, previous) is None

    def test_exactly_30_percent_is_not_flagged(self):
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id, net_salary=Decimal("100000.00"))
        current = make_item(employee_id=employee_id, net_salary=Decimal("130000.00"))

        assert check_unusual_variance(make_run(), current, previous) is None

    @pytest.mark.parametrize(
        ("days_absent", "bonuses", "gross", "expected"),
        [
            (Decimal("6"), Decimal("0"), Decimal("100000"), "Unpaid absences (6 days)"),
            (Decimal("5"), Decimal("60000"), Decimal("100000"), "Large bonus (60000)"),
            (Decimal("0"), Decimal("50000"), Decimal("100000"), "Unknown reason"),
        ],
    )
    def test_variance_reason_first_match_wins(self, days_absent, bonuses, gross, expected):
        item = make_item(days_absent=days_absent, bonuses=bonuses, gross_salary=gross)
        assert variance_reason(item) == expected


class TestFirstPayrollProrata:
    """Employees without a previous line item paid for a partial period."""

    def test_partial_first_period_produces_one_info(self):
        item = make_item(days_worked=Decimal("21"), net_salary=Decimal("95454.55"))

        findings = detect(make_run(), [item], {})
        prorata = [f for f in findings if f.category == IssueCategory.PRORATA]

        assert len(prorata) == 1
        assert prorata[0].issue_type == IssueType.INFO
        assert prorata[0].title == "First payroll (prorata)"
        assert prorata[0].description == "Salary calculated on 21 days"
        assert prorata[0].actual == Decimal("95455")

    def test_full_first_period_produces_nothing(self):
        item = make_item(days_worked=Decimal("22"))

        findings = detect(make_run(), [item], {})

        assert not [f for f in findings if f.category == IssueCategory.PRORATA]

    def test_existing_employee_is_not_prorata(self):
        """Short periods are only reported for the first payroll."""
        employee_id = uuid4()
        previous = make_item(employee_id=employee_id)
        current = make_item(employee_id=employee_id, days_worked=Decimal("10"))

        findings = detect(make_run(), [current], {employee_id: previous})

        assert not [f for f in findings if f.category == IssueCategory.PRORATA]


class TestLargeBonus:
    """Bonuses larger than twice gross salary."""

    def test_bonus_over_twice_gross_is_reported(self):
        item = make_item(bonuses=Decimal("250000.00"), gross_salary=Decimal("100000.00"))

        findings = detect(make_run(), [item], {})
        bonus = [f for f in findings if f.category == IssueCategory.BONUS]

        assert len(bonus) == 1
        assert bonus[0].issue_type == IssueType.INFO
        assert bonus[0].description == "Bonus of 250000 (more than 2x gross salary)"
        assert bonus[0].actual == Decimal("250000")

    def test_bonus_at_twice_gross_is_not_reported(self):
        item = make_item(bonuses=Decimal("200000.00"), gross_salary=Decimal("100000.00"))

        findings = detect(make_run(), [item], {})

        assert not [f for f in findings if f.category == IssueCategory.BONUS]


class TestDetect:
    """Rule composition."""

    def test_rules_are_additive(self):
        """Several rules can fire for the same employee."""
        item = make_item(
            overtime_hours={"rate15": 4},
            days_worked=Decimal("10"),
            bonuses=Decimal("300000.00"),
            gross_salary=Decimal("100000.00"),
        )

        findings = detect(make_run(), [item], {})

        assert {f.category for f in findings} == {
            IssueCategory.OVERTIME,
            IssueCategory.PRORATA,
            IssueCategory.BONUS,
        }

    def test_missing_employee_name_uses_placeholder(self):
        item = make_item(employee_name=None, days_worked=Decimal("5"))

        findings = detect(make_run(), [item], {})

        assert findings[0].employee_name == "Employee"

    def test_summarize_counts_by_severity(self):
        item = make_item(
            overtime_hours={"rate15": 4},
            days_worked=Decimal("10"),
        )
        counts = summarize(detect(make_run(), [item], {}))

        assert counts.total == 2
        assert counts.errors == 1
        assert counts.warnings == 0
        assert counts.info == 1
