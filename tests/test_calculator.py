"""Tests for the payroll calculator and single-employee recalculation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.calculators import (
    EmployeeCalculationContext,
    PayrollCalculator,
    TimeEntrySnapshot,
)
from payroll_review.calculators.engine import count_weekdays, expected_working_days
from payroll_review.errors import CalculationError, InvalidRunStateError, NotFoundError
from payroll_review.models import TimeEntry
from payroll_review.repository import PayrollRunRepository
from payroll_review.services import RecalculationService

from conftest import add_adjustment, add_time_entry, add_run


def context(**overrides) -> EmployeeCalculationContext:
    values = {
        "employee_id": uuid4(),
        "employee_name": "Awa Ndiaye",
        "base_salary": Decimal("346660.00"),
        "hire_date": date(2023, 1, 2),
        "termination_date": None,
        "period_start": date(2024, 1, 1),
        "period_end": date(2024, 1, 31),
        "payment_frequency": "monthly",
        "time_entries": [
            TimeEntrySnapshot(work_date=date(2024, 1, day), hours=Decimal("8"))
            for day in range(1, 32)
            if date(2024, 1, day).weekday() < 5
        ],
    }
    values.update(overrides)
    return EmployeeCalculationContext(**values)


class TestWorkingDays:
    """Expected working days for full and partial periods."""

    def test_count_weekdays(self):
        assert count_weekdays(date(2024, 1, 15), date(2024, 1, 31)) == 13
        assert count_weekdays(date(2024, 1, 6), date(2024, 1, 7)) == 0

    def test_full_period_uses_standard_days(self):
        assert expected_working_days(context(), 22) == 22

    def test_mid_period_hire_is_prorated(self):
        assert expected_working_days(context(hire_date=date(2024, 1, 15)), 22) == 13

    def test_mid_period_exit_is_prorated(self):
        ctx = context(termination_date=date(2024, 1, 12))
        assert expected_working_days(ctx, 22) == 10


class TestCalculateEmployee:
    """Pure per-employee calculation."""

    async def test_full_month_with_overtime(self, session: AsyncSession, settings):
        entries = context().time_entries
        entries[0] = TimeEntrySnapshot(
            work_date=entries[0].work_date,
            hours=Decimal("12"),
            overtime_breakdown={"rate15": 3, "rate50": 1},
        )
        calculator = PayrollCalculator(session, settings)

        result = calculator.calculate_employee(context(time_entries=entries))

        assert result.success
        assert result.days_worked == 22
        assert result.days_absent == 0
        assert result.hours_worked == Decimal("188.00")
        assert result.overtime_hours == {"rate15": Decimal("3.00"), "rate50": Decimal("1.00")}
        # hourly rate 2000: 3 * 2000 * 1.15 + 1 * 2000 * 1.50
        assert result.overtime_pay == Decimal("9900.00")
        assert result.gross_salary == Decimal("356560.00")
        assert result.total_deductions == Decimal("22463.28")
        assert result.net_salary == Decimal("334096.72")

    async def test_absences_reduce_base_pay(self, session: AsyncSession, settings):
        entries = context().time_entries[:11]
        calculator = PayrollCalculator(session, settings)

        result = calculator.calculate_employee(context(time_entries=entries))

        assert result.days_worked == 11
        assert result.days_absent == 11
        assert result.gross_salary == Decimal("173330.00")

    async def test_no_attendance_is_an_error(self, session: AsyncSession, settings):
        result = PayrollCalculator(session, settings).calculate_employee(
            context(time_entries=[])
        )

        assert not result.success
        assert "No attendance recorded for this period" in result.errors

    async def test_unknown_overtime_tier_is_an_error(self, session: AsyncSession, settings):
        entries = [
            TimeEntrySnapshot(
                work_date=date(2024, 1, 2),
                hours=Decimal("10"),
                overtime_breakdown={"rate200": 2},
            )
        ]

        result = PayrollCalculator(session, settings).calculate_employee(
            context(time_entries=entries)
        )

        assert not result.success
        assert result.errors == ["Unknown overtime tier 'rate200'"]

    async def test_unsupported_frequency_is_an_error(self, session: AsyncSession, settings):
        result = PayrollCalculator(session, settings).calculate_employee(
            context(payment_frequency="quarterly")
        )

        assert not result.success

    async def test_hash_is_deterministic(self, session: AsyncSession, settings):
        calculator = PayrollCalculator(session, settings)
        ctx = context()

        first = calculator.calculate_employee(ctx)
        second = calculator.calculate_employee(context(employee_id=ctx.employee_id))

        assert first.compute_hash("1.0.0") == second.compute_hash("1.0.0")
        assert first.compute_hash("1.0.0") != first.compute_hash("2.0.0")


class TestRunPayroll:
    """Bulk driver."""

    async def test_bulk_run_stores_line_items(self, session: AsyncSession, tenant_id, calculated_run):
        run = calculated_run["run"]
        items = {
            li.employee_id: li
            for li in await PayrollRunRepository(session).get_line_items(tenant_id, run.id)
        }

        assert run.status == "calculated"
        assert len(items) == 2

        awa = items[calculated_run["awa"].id]
        assert awa.employee_name == "Awa Ndiaye"
        assert awa.overtime_pay == Decimal("19800.00")
        assert awa.net_salary == Decimal("343373.02")
        assert awa.calculation_hash is not None

        moussa = items[calculated_run["moussa"].id]
        assert moussa.days_worked == 13
        assert moussa.bonuses == Decimal("15000.00")
        assert moussa.gross_salary == Decimal("145000.00")
        assert moussa.net_salary == Decimal("135865.00")

    async def test_rerun_drops_line_item_of_failed_employee(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        moussa = calculated_run["moussa"]
        await session.execute(delete(TimeEntry).where(TimeEntry.employee_id == moussa.id))

        result = await PayrollCalculator(session, settings).run_payroll(tenant_id, run.id)

        assert result.results[moussa.id].errors == ["No attendance recorded for this period"]
        repository = PayrollRunRepository(session)
        assert await repository.get_line_item(tenant_id, run.id, moussa.id) is None
        remaining = await repository.get_line_items(tenant_id, run.id)
        assert [li.employee_id for li in remaining] == [calculated_run["awa"].id]

    async def test_rerun_drops_line_item_of_inactive_employee(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        moussa = calculated_run["moussa"]
        moussa.hire_date = date(2024, 2, 1)
        await session.flush()

        result = await PayrollCalculator(session, settings).run_payroll(tenant_id, run.id)

        assert moussa.id not in result.results
        assert (
            await PayrollRunRepository(session).get_line_item(tenant_id, run.id, moussa.id)
            is None
        )

    async def test_approved_run_cannot_be_calculated(self, session: AsyncSession, tenant_id, settings):
        run = await add_run(session, tenant_id, status="approved")

        with pytest.raises(InvalidRunStateError):
            await PayrollCalculator(session, settings).run_payroll(tenant_id, run.id)


class TestRecalculateEmployee:
    """Single-employee recalculation goes through the bulk calculation path."""

    async def test_untouched_employee_recalculates_identically(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        employee = calculated_run["awa"]
        repository = PayrollRunRepository(session)
        stored = await repository.get_line_item(tenant_id, run.id, employee.id)
        before = {
            "gross": stored.gross_salary,
            "deductions": stored.total_deductions,
            "net": stored.net_salary,
            "overtime_pay": stored.overtime_pay,
            "hash": stored.calculation_hash,
        }

        result = await RecalculationService(session, settings).recalculate_employee(
            tenant_id, run.id, employee.id
        )
        line_item = result.line_item

        assert line_item.id == stored.id
        assert result.net_before == result.net_after == before["net"]
        assert {
            "gross": line_item.gross_salary,
            "deductions": line_item.total_deductions,
            "net": line_item.net_salary,
            "overtime_pay": line_item.overtime_pay,
            "hash": line_item.calculation_hash,
        } == before

    async def test_changed_input_updates_only_that_employee(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        moussa = calculated_run["moussa"]
        repository = PayrollRunRepository(session)
        awa_hash = (
            await repository.get_line_item(tenant_id, run.id, calculated_run["awa"].id)
        ).calculation_hash
        await add_adjustment(session, moussa, run, "deduction", Decimal("5000.00"))

        result = await RecalculationService(session, settings).recalculate_employee(
            tenant_id, run.id, moussa.id
        )

        assert result.net_before == Decimal("135865.00")
        assert result.net_after == Decimal("130865.00")
        assert result.line_item.total_deductions == Decimal("14135.00")
        assert result.line_item.net_salary == Decimal("130865.00")
        awa = await repository.get_line_item(tenant_id, run.id, calculated_run["awa"].id)
        assert awa.calculation_hash == awa_hash

    async def test_failed_calculation_leaves_line_item_untouched(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        awa = calculated_run["awa"]
        await add_time_entry(session, awa, date(2024, 1, 20), Decimal("4.00"), {"rate300": 4})
        stored = await PayrollRunRepository(session).get_line_item(tenant_id, run.id, awa.id)
        net_before = stored.net_salary
        hash_before = stored.calculation_hash

        with pytest.raises(CalculationError) as exc_info:
            await RecalculationService(session, settings).recalculate_employee(
                tenant_id, run.id, awa.id
            )

        assert exc_info.value.errors == ["Unknown overtime tier 'rate300'"]
        assert stored.net_salary == net_before
        assert stored.calculation_hash == hash_before

    async def test_approved_run_is_rejected(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        run = calculated_run["run"]
        run.status = "approved"
        await session.flush()

        with pytest.raises(InvalidRunStateError):
            await RecalculationService(session, settings).recalculate_employee(
                tenant_id, run.id, calculated_run["awa"].id
            )

    async def test_missing_line_item_raises(
        self, session: AsyncSession, tenant_id, settings, calculated_run
    ):
        with pytest.raises(NotFoundError):
            await RecalculationService(session, settings).recalculate_employee(
                tenant_id, calculated_run["run"].id, uuid4()
            )

    async def test_other_tenant_gets_not_found(
        self, session: AsyncSession, other_tenant_id, settings, calculated_run
    ):
        with pytest.raises(NotFoundError):
            await RecalculationService(session, settings).recalculate_employee(
                other_tenant_id, calculated_run["run"].id, calculated_run["awa"].id
            )
