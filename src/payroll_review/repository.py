"""Tenant-scoped reads of payroll runs and line items."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.errors import NotFoundError
from payroll_review.models import PayrollLineItem, PayrollRun


class PayrollRunRepository:
    """Read access to runs and line items.

    Every query filters on tenant_id; a run belonging to another tenant is
    indistinguishable from a missing one.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_run(self, tenant_id: UUID, run_id: UUID) -> PayrollRun:
        """Load a run, raising NotFoundError if it is not the tenant's."""
        result = await self.session.execute(
            select(PayrollRun).where(
                PayrollRun.id == run_id,
                PayrollRun.tenant_id == tenant_id,
            )
        )
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Payroll run", run_id)
        return run

    async def find_previous_run(self, run: PayrollRun) -> PayrollRun | None:
        """Latest run of the same tenant and frequency starting strictly earlier."""
        result = await self.session.execute(
            select(PayrollRun)
            .where(
                PayrollRun.tenant_id == run.tenant_id,
                PayrollRun.payment_frequency == run.payment_frequency,
                PayrollRun.period_start < run.period_start,
            )
            .order_by(PayrollRun.period_start.desc(), PayrollRun.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_line_items(self, tenant_id: UUID, run_id: UUID) -> list[PayrollLineItem]:
        """All line items of a run, in a stable order."""
        result = await self.session.execute(
            select(PayrollLineItem)
            .where(
                PayrollLineItem.tenant_id == tenant_id,
                PayrollLineItem.payroll_run_id == run_id,
            )
            .order_by(PayrollLineItem.employee_name, PayrollLineItem.employee_id)
        )
        return list(result.scalars().all())

    async def get_line_item(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> PayrollLineItem | None:
        """One employee's line item in a run, if any."""
        result = await self.session.execute(
            select(PayrollLineItem).where(
                PayrollLineItem.tenant_id == tenant_id,
                PayrollLineItem.payroll_run_id == run_id,
                PayrollLineItem.employee_id == employee_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_employee_ids(self, tenant_id: UUID, run_id: UUID) -> list[UUID]:
        """Distinct employees with a line item in the run."""
        result = await self.session.execute(
            select(PayrollLineItem.employee_id)
            .where(
                PayrollLineItem.tenant_id == tenant_id,
                PayrollLineItem.payroll_run_id == run_id,
            )
            .distinct()
        )
        return list(result.scalars().all())
