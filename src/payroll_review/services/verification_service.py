"""Per-(run, employee) verification tracking."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_review.database import chunked, dialect_insert
from payroll_review.errors import NotFoundError
from payroll_review.models import VerificationStatus
from payroll_review.repository import PayrollRunRepository
from payroll_review.services.state_machine import (
    VerificationState,
    VerificationStateMachine,
)

logger = logging.getLogger(__name__)

UPSERT_KEY = ["payroll_run_id", "employee_id"]


class VerificationService:
    """Records reviewer verification outcomes.

    Rows are upserted on (payroll_run_id, employee_id); the absence of a row
    means "unverified" and rows are never pre-populated. Concurrent writers
    for the same pair are last-writer-wins.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = PayrollRunRepository(session)

    async def mark_verified(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
        verified_by: UUID,
        notes: str | None = None,
    ) -> VerificationStatus:
        """Mark one employee verified. Always legal, from any state."""
        await self._require_line_item(tenant_id, run_id, employee_id)

        await self._upsert(
            tenant_id=tenant_id,
            run_id=run_id,
            employee_ids=[employee_id],
            status=VerificationState.VERIFIED,
            actor=verified_by,
            notes=notes,
            overwrite_notes=True,
        )
        logger.info("Employee %s verified in run %s by %s", employee_id, run_id, verified_by)
        return await self._get(tenant_id, run_id, employee_id)

    async def mark_all_verified(
        self,
        tenant_id: UUID,
        run_id: UUID,
        verified_by: UUID,
    ) -> int:
        """Mark every employee with a line item in the run verified.

        INSERT ... ON CONFLICT DO UPDATE, split into bounded statements within
        one transaction, so the batch is applied atomically and a retry never
        creates duplicates. Existing notes are kept.
        """
        await self.repository.get_run(tenant_id, run_id)

        employee_ids = await self.repository.get_employee_ids(tenant_id, run_id)
        if not employee_ids:
            return 0

        await self._upsert(
            tenant_id=tenant_id,
            run_id=run_id,
            employee_ids=employee_ids,
            status=VerificationState.VERIFIED,
            actor=verified_by,
            notes=None,
            overwrite_notes=False,
        )
        logger.info(
            "Marked %d employees verified in run %s by %s",
            len(employee_ids),
            run_id,
            verified_by,
        )
        return len(employee_ids)

    async def mark_flagged(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_id: UUID,
        flagged_by: UUID,
        notes: str | None = None,
    ) -> VerificationStatus:
        """Flag one employee for follow-up.

        Raises InvalidTransitionError if the current state does not allow it.
        """
        await self._require_line_item(tenant_id, run_id, employee_id)

        existing = await self._find(tenant_id, run_id, employee_id)
        current = VerificationStateMachine.current_state(
            existing.status if existing else None
        )
        VerificationStateMachine.validate_transition(current, VerificationState.FLAGGED)

        await self._upsert(
            tenant_id=tenant_id,
            run_id=run_id,
            employee_ids=[employee_id],
            status=VerificationState.FLAGGED,
            actor=flagged_by,
            notes=notes,
            overwrite_notes=True,
        )
        logger.info("Employee %s flagged in run %s by %s", employee_id, run_id, flagged_by)
        return await self._get(tenant_id, run_id, employee_id)

    async def get_status(self, tenant_id: UUID, run_id: UUID) -> list[VerificationStatus]:
        """Stored rows for the run. Employees without a row are unverified."""
        await self.repository.get_run(tenant_id, run_id)

        result = await self.session.execute(
            select(VerificationStatus)
            .where(
                VerificationStatus.tenant_id == tenant_id,
                VerificationStatus.payroll_run_id == run_id,
            )
            .order_by(VerificationStatus.employee_id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _upsert(
        self,
        tenant_id: UUID,
        run_id: UUID,
        employee_ids: list[UUID],
        status: str,
        actor: UUID,
        notes: str | None,
        overwrite_notes: bool,
    ) -> None:
        """Insert or overwrite status rows for the given employees."""
        now = datetime.now(timezone.utc)
        status_value = VerificationState(status).value

        for batch in chunked(employee_ids):
            stmt = dialect_insert(self.session, VerificationStatus.__table__).values(
                [
                    {
                        "tenant_id": tenant_id,
                        "payroll_run_id": run_id,
                        "employee_id": employee_id,
                        "status": status_value,
                        "verified_by": actor,
                        "verified_at": now,
                        "notes": notes,
                    }
                    for employee_id in batch
                ]
            )
            update_set = {
                "status": status_value,
                "verified_by": actor,
                "verified_at": now,
                "updated_at": func.now(),
            }
            if overwrite_notes:
                update_set["notes"] = stmt.excluded.notes

            await self.session.execute(
                stmt.on_conflict_do_update(
                    index_elements=UPSERT_KEY,
                    set_=update_set,
                    # Never touch another tenant's row through a shared key
                    where=VerificationStatus.__table__.c.tenant_id == tenant_id,
                )
            )

    async def _require_line_item(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> None:
        await self.repository.get_run(tenant_id, run_id)
        if await self.repository.get_line_item(tenant_id, run_id, employee_id) is None:
            raise NotFoundError("Line item for employee", employee_id)

    def _select_one(self, tenant_id: UUID, run_id: UUID, employee_id: UUID):
        return (
            select(VerificationStatus)
            .where(
                VerificationStatus.tenant_id == tenant_id,
                VerificationStatus.payroll_run_id == run_id,
                VerificationStatus.employee_id == employee_id,
            )
            .execution_options(populate_existing=True)
        )

    async def _find(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> VerificationStatus | None:
        result = await self.session.execute(self._select_one(tenant_id, run_id, employee_id))
        return result.scalar_one_or_none()

    async def _get(
        self, tenant_id: UUID, run_id: UUID, employee_id: UUID
    ) -> VerificationStatus:
        # Row was just upserted inside this transaction
        result = await self.session.execute(self._select_one(tenant_id, run_id, employee_id))
        return result.scalar_one()
