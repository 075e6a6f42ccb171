"""Review service: the external surface of the review engine.

Coordinates anomaly detection, issue persistence, verification tracking,
targeted recalculation and overtime breakdowns for one tenant's runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.config import Settings
from payroll_review.models import PayrollLineItem, PayrollRun, ValidationIssue, VerificationStatus
from payroll_review.repository import PayrollRunRepository
from payroll_review.review import ValidationFinding, detect, summarize
from payroll_review.services.issue_service import IssueService
from payroll_review.services.overtime_service import OvertimeBreakdown, OvertimeService
from payroll_review.services.recalculation_service import (
    RecalculationResult,
    RecalculationService,
)
from payroll_review.services.verification_service import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class ValidationReport:
    """Findings of one validation pass with their counts."""

    issues: list[ValidationFinding] = field(default_factory=list)
    total_issues: int = 0
    errors: int = 0
    warnings: int = 0
    info: int = 0
    # Rows newly stored by this pass; 0 when every finding was already known
    persisted: int = 0


@dataclass
class PreviousRun:
    """The comparable earlier run and its line items."""

    run: PayrollRun
    line_items: list[PayrollLineItem]


class ReviewService:
    """Review operations for payroll runs."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.repository = PayrollRunRepository(session)
        self.issues = IssueService(session)
        self.verification = VerificationService(session)
        self.recalculation = RecalculationService(session, settings)
        self.overtime = OvertimeService(session)

    async def validate(self, tenant_id: UUID, run_id: UUID) -> ValidationReport:
        """Audit a run against its previous comparable run and store findings.

        Returns every finding detected by this pass, including ones already
        stored by an earlier pass.
        """
        run = await self.repository.get_run(tenant_id, run_id)
        line_items = await self.repository.get_line_items(tenant_id, run.id)

        previous_by_employee: dict[UUID, PayrollLineItem] = {}
        previous = await self.repository.find_previous_run(run)
        if previous is not None:
            for item in await self.repository.get_line_items(tenant_id, previous.id):
                previous_by_employee[item.employee_id] = item

        findings = detect(run, line_items, previous_by_employee)
        persisted = await self.issues.persist(tenant_id, run.id, findings)
        counts = summarize(findings)

        logger.info(
            "Validated run %s: %d line items, %d issues (%d errors, %d warnings, %d info)",
            run.id,
            len(line_items),
            counts.total,
            counts.errors,
            counts.warnings,
            counts.info,
        )
        return ValidationReport(
            issues=findings,
            total_issues=counts.total,
            errors=counts.errors,
            warnings=counts.warnings,
            info=counts.info,
            persisted=persisted,
        )

    async def get_previous_run(
        self, tenant_id: UUID, current_run_id: UUID
    ) -> PreviousRun | None:
        """Previous run of the same frequency with its line items, if any."""
        run = await self.repository.get_run(tenant_id, current_run_id)
        previous = await self.repository.find_previous_run(run)
        if previous is None:
            return None
        line_items = await self.repository.get_line_items(tenant_id, previous.id)
        return PreviousRun(run=previous, line_items=line_items)

    # === Issues ===

    async def list_issues(
        self, tenant_id: UUID, run_id: UUID, include_resolved: bool = True
    ) -> list[ValidationIssue]:
        return await self.issues.list_issues(tenant_id, run_id, include_resolved)

    async def resolve_issue(
        self, tenant_id: UUID, run_id: UUID, issue_id: UUID, resolved_by: UUID
    ) -> ValidationIssue:
        return await self.issues.resolve_issue(tenant_id, run_id, issue_id, resolved_by)

    # === Verification ===

    async def mark_verified(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
        verified_by: UUID,
        notes: str | None = None,
    ) -> VerificationStatus:
        return await self.verification.mark_verified(
            tenant_id, run_id, employee_id, verified_by, notes
        )

    async def mark_flagged(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
        flagged_by: UUID,
        notes: str | None = None,
    ) -> VerificationStatus:
        return await self.verification.mark_flagged(
            tenant_id, run_id, employee_id, flagged_by, notes
        )

    async def mark_all_verified(
        self, tenant_id: UUID, run_id: UUID, verified_by: UUID
    ) -> int:
        return await self.verification.mark_all_verified(tenant_id, run_id, verified_by)

    async def get_verification_status(
        self, tenant_id: UUID, run_id: UUID
    ) -> list[VerificationStatus]:
        return await self.verification.get_status(tenant_id, run_id)

    # === Recalculation and breakdown ===

    async def recalculate_employee(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> RecalculationResult:
        return await self.recalculation.recalculate_employee(tenant_id, run_id, employee_id)

    async def get_overtime_breakdown(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> OvertimeBreakdown | None:
        return await self.overtime.breakdown(tenant_id, run_id, employee_id)
