"""Auditable hours/pay breakdown for one employee in a run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.calculators.engine import period_window
from payroll_review.calculators.rates import (
    hourly_rate,
    round_to_cents,
    tier_multiplier,
    to_decimal,
)
from payroll_review.models import TimeEntry
from payroll_review.repository import PayrollRunRepository

# Tiers always reported, even with zero hours
REPORTED_TIERS = ("rate15", "rate50")


@dataclass
class TierBreakdown:
    """Hours and pay for one overtime tier."""

    tier: str
    hours: Decimal
    multiplier: Decimal | None
    # None when the tier has no known multiplier
    amount: Decimal | None


@dataclass
class TimeEntryDetail:
    """One attendance record, for audit display."""

    work_date: date
    hours_worked: Decimal


@dataclass
class OvertimeBreakdown:
    """Hours and overtime pay decomposition for one employee in one run.

    ``overtime_pay`` is the stored, authoritative total. Tier amounts are
    recomputed from tier hours with the calculator's multipliers and may
    differ from it by rounding, or entirely if the stored figure was not
    produced by the calculator.
    """

    payroll_run_id: UUID
    employee_id: UUID
    total_hours: Decimal
    normal_hours: Decimal
    total_overtime_hours: Decimal
    hourly_rate: Decimal
    overtime_pay: Decimal
    tiers: list[TierBreakdown] = field(default_factory=list)
    entries: list[TimeEntryDetail] = field(default_factory=list)

    @property
    def tier_amounts_total(self) -> Decimal:
        return sum((t.amount for t in self.tiers if t.amount is not None), Decimal("0"))


class OvertimeService:
    """Reconstructs overtime breakdowns from attendance and stored totals."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = PayrollRunRepository(session)

    async def breakdown(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
    ) -> OvertimeBreakdown | None:
        """Breakdown for one employee, or None if they have no line item in the run."""
        run = await self.repository.get_run(tenant_id, run_id)

        line_item = await self.repository.get_line_item(tenant_id, run_id, employee_id)
        if line_item is None:
            return None

        window_start, window_end = period_window(run.period_start, run.period_end)
        result = await self.session.execute(
            select(TimeEntry)
            .where(
                TimeEntry.tenant_id == tenant_id,
                TimeEntry.employee_id == employee_id,
                TimeEntry.clock_in >= window_start,
                TimeEntry.clock_in < window_end,
            )
            .order_by(TimeEntry.clock_in, TimeEntry.id)
        )
        entries = [
            TimeEntryDetail(
                work_date=entry.clock_in.date(),
                hours_worked=to_decimal(entry.total_hours),
            )
            for entry in result.scalars().all()
        ]

        rate = hourly_rate(line_item.base_salary)
        total_hours = sum((e.hours_worked for e in entries), Decimal("0"))

        stored_tiers = {
            tier: to_decimal(hours) for tier, hours in (line_item.overtime_hours or {}).items()
        }
        for tier in REPORTED_TIERS:
            stored_tiers.setdefault(tier, Decimal("0"))
        total_overtime_hours = sum(stored_tiers.values(), Decimal("0"))

        tiers = []
        for tier in sorted(stored_tiers):
            hours = stored_tiers[tier]
            multiplier = tier_multiplier(tier)
            amount = (
                round_to_cents(hours * rate * multiplier) if multiplier is not None else None
            )
            tiers.append(
                TierBreakdown(tier=tier, hours=hours, multiplier=multiplier, amount=amount)
            )

        return OvertimeBreakdown(
            payroll_run_id=run_id,
            employee_id=employee_id,
            total_hours=total_hours,
            normal_hours=total_hours - total_overtime_hours,
            total_overtime_hours=total_overtime_hours,
            hourly_rate=round_to_cents(rate),
            overtime_pay=to_decimal(line_item.overtime_pay),
            tiers=tiers,
            entries=entries,
        )
