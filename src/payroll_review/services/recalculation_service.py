"""Single-employee recalculation within a run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.calculators.engine import PayrollCalculator
from payroll_review.config import Settings
from payroll_review.errors import CalculationError, InvalidRunStateError, NotFoundError
from payroll_review.models import CALCULATION_ALLOWED, PayrollLineItem
from payroll_review.repository import PayrollRunRepository

logger = logging.getLogger(__name__)


@dataclass
class RecalculationResult:
    """Refreshed line item together with the net pay it replaced."""

    line_item: PayrollLineItem
    net_before: Decimal
    net_after: Decimal


class RecalculationService:
    """Re-runs the payroll calculation for exactly one employee.

    Delegates to ``PayrollCalculator.calculate`` with a one-employee subset,
    the same path the bulk run uses, and overwrites the stored line item
    only once the new figures are fully computed.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.repository = PayrollRunRepository(session)
        self.calculator = PayrollCalculator(session, settings)

    async def recalculate_employee(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
    ) -> RecalculationResult:
        """Recalculate and replace one employee's line item.

        Raises:
            NotFoundError: run or line item does not exist for the tenant
            InvalidRunStateError: run is approved or paid
            CalculationError: calculation failed; stored line item is untouched
        """
        run = await self.repository.get_run(tenant_id, run_id)
        if run.status not in CALCULATION_ALLOWED:
            raise InvalidRunStateError(run.id, run.status, "recalculate")

        line_item = await self.repository.get_line_item(tenant_id, run_id, employee_id)
        if line_item is None:
            raise NotFoundError("Line item for employee", employee_id)

        net_before = line_item.net_salary

        calculation = await self.calculator.calculate(run, [employee_id])
        result = calculation.results.get(employee_id)
        if result is None:
            raise CalculationError(
                employee_id, ["Employee is not active during the run period"]
            )
        if not result.success:
            raise CalculationError(employee_id, result.errors)

        result.apply_to(line_item, self.calculator.settings.engine_version)
        await self.session.flush()
        await self.session.refresh(line_item)

        logger.info(
            "Recalculated employee %s in run %s: net %s -> %s",
            employee_id,
            run_id,
            net_before,
            line_item.net_salary,
        )
        return RecalculationResult(
            line_item=line_item,
            net_before=net_before,
            net_after=line_item.net_salary,
        )
