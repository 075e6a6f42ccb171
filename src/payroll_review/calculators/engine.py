"""Payroll calculation engine.

There is exactly one calculation code path: ``PayrollCalculator.calculate``,
parameterized by an optional employee subset. The bulk driver
(``run_payroll``) and the single-employee recalculation both go through it,
so a targeted recalculation always reproduces what the bulk run stores.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.calculators.rates import (
    STANDARD_WORKING_DAYS,
    hourly_rate,
    round_to_cents,
    tier_multiplier,
    to_decimal,
)
from payroll_review.calculators.types import (
    EmployeeCalculationContext,
    LineItemResult,
    RunCalculationResult,
    TimeEntrySnapshot,
)
from payroll_review.config import Settings, get_settings
from payroll_review.errors import InvalidRunStateError
from payroll_review.models import (
    CALCULATION_ALLOWED,
    Employee,
    PayAdjustment,
    PayrollLineItem,
    PayrollRun,
    PayrollRunStatus,
    TimeEntry,
)
from payroll_review.repository import PayrollRunRepository

logger = logging.getLogger(__name__)


def period_window(period_start: date, period_end: date) -> tuple[datetime, datetime]:
    """Half-open UTC timestamp window covering every day of the period."""
    start = datetime.combine(period_start, time.min, tzinfo=timezone.utc)
    end = datetime.combine(period_end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    return start, end


def count_weekdays(start: date, end: date) -> int:
    """Count Monday-Friday dates in [start, end]."""
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def expected_working_days(ctx: EmployeeCalculationContext, standard_days: int) -> int:
    """Working days the employee was employed for within the period."""
    start = max(ctx.period_start, ctx.hire_date)
    end = ctx.period_end
    if ctx.termination_date is not None:
        end = min(end, ctx.termination_date)

    if start == ctx.period_start and end == ctx.period_end:
        return standard_days
    return min(count_weekdays(start, end), standard_days)


class PayrollCalculator:
    """Calculates line items for a payroll run.

    Calculation pipeline (stable order per employee):
    1) Expected working days for the period (prorated for hires/exits)
    2) Days worked/absent and hours from attendance
    3) Prorated base pay
    4) Overtime pay per tier
    5) Bonuses
    6) Employee contributions and deduction adjustments
    7) Net = gross - deductions
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()
        self.repository = PayrollRunRepository(session)

    async def calculate(
        self,
        run: PayrollRun,
        employee_ids: Iterable[UUID] | None = None,
    ) -> RunCalculationResult:
        """Calculate pay for the run's active employees, optionally a subset.

        Nothing is written; callers decide what to persist.
        """
        employees = await self._load_employees(run, employee_ids)
        ids = [e.id for e in employees]
        entries = await self._load_time_entries(run, ids)
        adjustments = await self._load_adjustments(run, ids)

        results: dict[UUID, LineItemResult] = {}
        total_gross = Decimal("0")
        total_net = Decimal("0")
        error_count = 0

        for employee in employees:
            bonus_amounts = [
                a.amount for a in adjustments[employee.id] if a.adjustment_type == "bonus"
            ]
            deduction_amounts = [
                a.amount for a in adjustments[employee.id] if a.adjustment_type == "deduction"
            ]
            ctx = EmployeeCalculationContext(
                employee_id=employee.id,
                employee_name=employee.full_name,
                base_salary=employee.base_salary,
                hire_date=employee.hire_date,
                termination_date=employee.termination_date,
                period_start=run.period_start,
                period_end=run.period_end,
                payment_frequency=run.payment_frequency,
                time_entries=entries[employee.id],
                bonus_amounts=bonus_amounts,
                deduction_amounts=deduction_amounts,
            )
            result = self.calculate_employee(ctx)
            results[employee.id] = result

            if result.success:
                total_gross += result.gross_salary
                total_net += result.net_salary
            else:
                error_count += 1

        return RunCalculationResult(
            payroll_run_id=run.id,
            results=results,
            total_gross=total_gross,
            total_net=total_net,
            error_count=error_count,
        )

    def calculate_employee(self, ctx: EmployeeCalculationContext) -> LineItemResult:
        """Calculate pay for a single employee. Pure: no I/O."""
        standard_days = STANDARD_WORKING_DAYS.get(ctx.payment_frequency)
        if standard_days is None:
            ctx.errors.append(f"Unsupported payment frequency: {ctx.payment_frequency}")
            return self._build_error_result(ctx)

        # 1-2) Attendance
        expected_days = expected_working_days(ctx, standard_days)
        worked_dates = {entry.work_date for entry in ctx.time_entries}
        if not worked_dates:
            ctx.errors.append("No attendance recorded for this period")
            return self._build_error_result(ctx)

        days_worked = min(len(worked_dates), expected_days)
        days_absent = expected_days - days_worked
        hours_worked = round_to_cents(
            sum((entry.hours for entry in ctx.time_entries), Decimal("0"))
        )

        # 3) Base pay
        base_salary = round_to_cents(ctx.base_salary)
        rate = hourly_rate(base_salary)
        base_pay = round_to_cents(base_salary * days_worked / standard_days)

        # 4) Overtime
        tier_totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
        unknown_tiers: set[str] = set()
        for entry in ctx.time_entries:
            for tier, hours in (entry.overtime_breakdown or {}).items():
                if tier_multiplier(tier) is None:
                    unknown_tiers.add(tier)
                    continue
                tier_totals[tier] += to_decimal(hours)
        for tier in sorted(unknown_tiers):
            ctx.errors.append(f"Unknown overtime tier '{tier}'")

        overtime_hours = {
            tier: round_to_cents(hours)
            for tier, hours in sorted(tier_totals.items())
            if hours > 0
        }
        overtime_pay = round_to_cents(
            sum(
                (hours * rate * tier_multiplier(tier) for tier, hours in overtime_hours.items()),
                Decimal("0"),
            )
        )

        # 5) Bonuses
        bonuses = round_to_cents(sum(ctx.bonus_amounts, Decimal("0")))
        gross = base_pay + overtime_pay + bonuses

        # 6) Deductions
        contribution = round_to_cents(gross * self.settings.employee_contribution_rate)
        other_deductions = round_to_cents(sum(ctx.deduction_amounts, Decimal("0")))
        total_deductions = contribution + other_deductions

        # 7) Net
        net = gross - total_deductions
        if net < 0:
            ctx.errors.append(f"Negative net pay: {net}")

        if ctx.has_errors:
            return self._build_error_result(ctx)

        return LineItemResult(
            employee_id=ctx.employee_id,
            employee_name=ctx.employee_name,
            base_salary=base_salary,
            gross_salary=gross,
            total_deductions=total_deductions,
            net_salary=net,
            overtime_hours=overtime_hours,
            overtime_pay=overtime_pay,
            bonuses=bonuses,
            days_worked=Decimal(days_worked),
            days_absent=Decimal(days_absent),
            hours_worked=hours_worked,
        )

    async def run_payroll(self, tenant_id: UUID, run_id: UUID) -> RunCalculationResult:
        """Bulk driver: calculate every active employee and replace line items.

        Existing line items are overwritten in place. Stored items for
        employees whose calculation fails, or who are no longer active in
        the period, are deleted so every remaining row is what the calculator
        currently produces.
        """
        run = await self.repository.get_run(tenant_id, run_id)
        if run.status not in CALCULATION_ALLOWED:
            raise InvalidRunStateError(run.id, run.status, "calculate")

        calculation = await self.calculate(run)

        line_items = await self.repository.get_line_items(tenant_id, run.id)
        existing = {li.employee_id: li for li in line_items}

        for employee_id, item_result in calculation.results.items():
            if not item_result.success:
                logger.warning(
                    "Skipping employee %s in run %s: %s",
                    employee_id,
                    run.id,
                    "; ".join(item_result.errors),
                )
                stale = existing.pop(employee_id, None)
                if stale is not None:
                    await self.session.delete(stale)
                continue

            line_item = existing.pop(employee_id, None)
            if line_item is None:
                line_item = PayrollLineItem(
                    tenant_id=run.tenant_id,
                    payroll_run_id=run.id,
                    employee_id=employee_id,
                )
                self.session.add(line_item)
            item_result.apply_to(line_item, self.settings.engine_version)

        # No longer active in the period
        for stale in existing.values():
            await self.session.delete(stale)

        run.status = PayrollRunStatus.CALCULATED.value
        await self.session.flush()

        logger.info(
            "Calculated run %s: %d employees, %d errors, gross=%s net=%s",
            run.id,
            len(calculation.results),
            calculation.error_count,
            calculation.total_gross,
            calculation.total_net,
        )
        return calculation

    def _build_error_result(self, ctx: EmployeeCalculationContext) -> LineItemResult:
        """Build a result with errors."""
        return LineItemResult(
            employee_id=ctx.employee_id,
            employee_name=ctx.employee_name,
            base_salary=Decimal("0"),
            gross_salary=Decimal("0"),
            total_deductions=Decimal("0"),
            net_salary=Decimal("0"),
            overtime_hours={},
            overtime_pay=Decimal("0"),
            bonuses=Decimal("0"),
            days_worked=Decimal("0"),
            days_absent=Decimal("0"),
            hours_worked=Decimal("0"),
            errors=ctx.errors,
        )

    # === Data Loading Methods ===

    async def _load_employees(
        self, run: PayrollRun, employee_ids: Iterable[UUID] | None
    ) -> list[Employee]:
        """Get employees employed at any point during the run period."""
        query = select(Employee).where(
            Employee.tenant_id == run.tenant_id,
            Employee.hire_date <= run.period_end,
            or_(
                Employee.termination_date.is_(None),
                Employee.termination_date >= run.period_start,
            ),
        )
        if employee_ids is not None:
            query = query.where(Employee.id.in_(list(employee_ids)))

        result = await self.session.execute(
            query.order_by(Employee.last_name, Employee.first_name, Employee.id)
        )
        return list(result.scalars().all())

    async def _load_time_entries(
        self, run: PayrollRun, employee_ids: list[UUID]
    ) -> dict[UUID, list[TimeEntrySnapshot]]:
        """Get attendance snapshots per employee for the run period."""
        entries: dict[UUID, list[TimeEntrySnapshot]] = defaultdict(list)
        if not employee_ids:
            return entries

        window_start, window_end = period_window(run.period_start, run.period_end)
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.tenant_id == run.tenant_id,
                TimeEntry.employee_id.in_(employee_ids),
                TimeEntry.clock_in >= window_start,
                TimeEntry.clock_in < window_end,
            )
            .order_by(TimeEntry.clock_in, TimeEntry.id)
        )
        for entry in result.scalars().all():
            entries[entry.employee_id].append(
                TimeEntrySnapshot(
                    work_date=entry.clock_in.date(),
                    hours=to_decimal(entry.total_hours),
                    overtime_breakdown=dict(entry.overtime_breakdown or {}),
                )
            )
        return entries

    async def _load_adjustments(
        self, run: PayrollRun, employee_ids: list[UUID]
    ) -> dict[UUID, list[PayAdjustment]]:
        """Get bonus/deduction adjustments per employee targeted at this run."""
        adjustments: dict[UUID, list[PayAdjustment]] = defaultdict(list)
        if not employee_ids:
            return adjustments

        result = await self.session.execute(
            select(PayAdjustment)
            .where(
                PayAdjustment.tenant_id == run.tenant_id,
                PayAdjustment.payroll_run_id == run.id,
                PayAdjustment.employee_id.in_(employee_ids),
            )
            .order_by(PayAdjustment.id)
        )
        for adjustment in result.scalars().all():
            adjustments[adjustment.employee_id].append(adjustment)
        return adjustments
