"""Idempotent persistence of validation findings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.database import chunked, dialect_insert
from payroll_review.errors import NotFoundError
from payroll_review.models import ValidationIssue
from payroll_review.repository import PayrollRunRepository
from payroll_review.review.types import ValidationFinding

logger = logging.getLogger(__name__)

NATURAL_KEY = ["payroll_run_id", "employee_id", "category", "title"]


class IssueService:
    """Stores findings and manages their resolution.

    Key invariants:
    1. (run, employee, category, title) is unique (enforced by constraint)
    2. Re-running validation skips existing findings via ON CONFLICT DO NOTHING
    3. Concurrent validation passes on the same run are safe without locking
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = PayrollRunRepository(session)

    async def persist(
        self,
        tenant_id: UUID,
        run_id: UUID,
        findings: Sequence[ValidationFinding],
    ) -> int:
        """Bulk insert findings, skipping any that already exist.

        Large batches are split into several statements inside the caller's
        transaction. Returns count of rows inserted (0 on a repeated pass).
        """
        if not findings:
            return 0

        inserted = 0
        for batch in chunked(list(findings)):
            stmt = (
                dialect_insert(self.session, ValidationIssue.__table__)
                .values(
                    [
                        {
                            "tenant_id": tenant_id,
                            "payroll_run_id": run_id,
                            "employee_id": finding.employee_id,
                            "issue_type": finding.issue_type.value,
                            "category": finding.category.value,
                            "title": finding.title,
                            "description": finding.description,
                            "expected_amount": finding.expected,
                            "actual_amount": finding.actual,
                            "resolved": False,
                        }
                        for finding in batch
                    ]
                )
                .on_conflict_do_nothing(index_elements=NATURAL_KEY)
            )
            result = await self.session.execute(stmt)
            inserted += max(result.rowcount or 0, 0)

        logger.info(
            "Persisted %d of %d findings for run %s", inserted, len(findings), run_id
        )
        return inserted

    async def list_issues(
        self,
        tenant_id: UUID,
        run_id: UUID,
        include_resolved: bool = True,
    ) -> list[ValidationIssue]:
        """Stored issues for a run."""
        await self.repository.get_run(tenant_id, run_id)

        query = select(ValidationIssue).where(
            ValidationIssue.tenant_id == tenant_id,
            ValidationIssue.payroll_run_id == run_id,
        )
        if not include_resolved:
            query = query.where(ValidationIssue.resolved.is_(False))

        result = await self.session.execute(
            query.order_by(ValidationIssue.created_at, ValidationIssue.id)
        )
        return list(result.scalars().all())

    async def resolve_issue(
        self,
        tenant_id: UUID,
        run_id: UUID,
        issue_id: UUID,
        resolved_by: UUID,
    ) -> ValidationIssue:
        """Mark an issue resolved. Resolving twice keeps the first resolver."""
        result = await self.session.execute(
            select(ValidationIssue).where(
                ValidationIssue.id == issue_id,
                ValidationIssue.tenant_id == tenant_id,
                ValidationIssue.payroll_run_id == run_id,
            )
        )
        issue = result.scalar_one_or_none()
        if issue is None:
            raise NotFoundError("Validation issue", issue_id)

        if not issue.resolved:
            issue.resolved = True
            issue.resolved_by = resolved_by
            issue.resolved_at = datetime.now(timezone.utc)
            await self.session.flush()
            await self.session.refresh(issue)
            logger.info("Issue %s resolved by %s", issue_id, resolved_by)

        return issue

