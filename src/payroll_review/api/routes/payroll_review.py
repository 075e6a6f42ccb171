"""Payroll review API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from payroll_review.api.dependencies import Review, TenantId
from payroll_review.api.schemas import (
    ErrorResponse,
    FlagRequest,
    IssueListResponse,
    IssueResponse,
    LineItemResponse,
    OvertimeBreakdownResponse,
    PayrollRunResponse,
    PreviousRunResponse,
    RecalculationResponse,
    ResolveIssueRequest,
    ValidationReportResponse,
    VerificationListResponse,
    VerificationStatusResponse,
    VerifyAllRequest,
    VerifyAllResponse,
    VerifyRequest,
)
from payroll_review.models import VerificationStatus
from payroll_review.services import VerificationStateMachine

router = APIRouter(prefix="/payroll-runs/{run_id}/review", tags=["payroll-review"])

RunId = Annotated[UUID, Path()]
EmployeeId = Annotated[UUID, Path()]


def _verification_response(row: VerificationStatus) -> VerificationStatusResponse:
    response = VerificationStatusResponse.model_validate(row)
    response.reviewed = VerificationStateMachine.is_reviewed(row.status)
    return response


# ============================================================================
# Validation
# ============================================================================


@router.post(
    "/validate",
    response_model=ValidationReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def validate_run(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
) -> ValidationReportResponse:
    """Run anomaly detection on a payroll run and store the findings."""
    report = await review.validate(tenant_id, run_id)
    return ValidationReportResponse.model_validate(report)


@router.get(
    "/previous",
    response_model=PreviousRunResponse | None,
    responses={404: {"model": ErrorResponse}},
)
async def get_previous_run(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
) -> PreviousRunResponse | None:
    """Get the previous comparable run with its line items, or null."""
    previous = await review.get_previous_run(tenant_id, run_id)
    if previous is None:
        return None
    return PreviousRunResponse(
        run=PayrollRunResponse.model_validate(previous.run),
        line_items=[LineItemResponse.model_validate(li) for li in previous.line_items],
    )


@router.get(
    "/issues",
    response_model=IssueListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_issues(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    include_resolved: Annotated[bool, Query()] = True,
) -> IssueListResponse:
    """List stored validation issues for a run."""
    issues = await review.list_issues(tenant_id, run_id, include_resolved)
    return IssueListResponse(
        items=[IssueResponse.model_validate(issue) for issue in issues],
        total=len(issues),
    )


@router.post(
    "/issues/{issue_id}/resolve",
    response_model=IssueResponse,
    responses={404: {"model": ErrorResponse}},
)
async def resolve_issue(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    issue_id: Annotated[UUID, Path()],
    payload: ResolveIssueRequest,
) -> IssueResponse:
    """Mark a validation issue resolved."""
    issue = await review.resolve_issue(tenant_id, run_id, issue_id, payload.resolved_by)
    return IssueResponse.model_validate(issue)


# ============================================================================
# Verification
# ============================================================================


@router.get(
    "/verification",
    response_model=VerificationListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_verification_status(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
) -> VerificationListResponse:
    """List stored verification statuses. Missing employees are unverified."""
    rows = await review.get_verification_status(tenant_id, run_id)
    items = [_verification_response(row) for row in rows]
    return VerificationListResponse(
        items=items,
        reviewed_count=sum(1 for item in items if item.reviewed),
    )


@router.post(
    "/verification/verify-all",
    response_model=VerifyAllResponse,
    responses={404: {"model": ErrorResponse}},
)
async def verify_all(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    payload: VerifyAllRequest,
) -> VerifyAllResponse:
    """Mark every employee in the run verified."""
    count = await review.mark_all_verified(tenant_id, run_id, payload.verified_by)
    return VerifyAllResponse(payroll_run_id=run_id, verified_count=count)


@router.put(
    "/verification/{employee_id}",
    response_model=VerificationStatusResponse,
    responses={404: {"model": ErrorResponse}},
)
async def verify_employee(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    employee_id: EmployeeId,
    payload: VerifyRequest,
) -> VerificationStatusResponse:
    """Mark one employee verified."""
    row = await review.mark_verified(
        tenant_id, run_id, employee_id, payload.verified_by, payload.notes
    )
    return _verification_response(row)


@router.post(
    "/verification/flag/{employee_id}",
    response_model=VerificationStatusResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def flag_employee(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    employee_id: EmployeeId,
    payload: FlagRequest,
) -> VerificationStatusResponse:
    """Flag one employee for follow-up."""
    row = await review.mark_flagged(
        tenant_id, run_id, employee_id, payload.flagged_by, payload.notes
    )
    return _verification_response(row)


# ============================================================================
# Per-employee recalculation and breakdown
# ============================================================================


@router.post(
    "/employees/{employee_id}/recalculate",
    response_model=RecalculationResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def recalculate_employee(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    employee_id: EmployeeId,
) -> RecalculationResponse:
    """Recalculate one employee's line item through the payroll calculator."""
    result = await review.recalculate_employee(tenant_id, run_id, employee_id)
    return RecalculationResponse.model_validate(result)


@router.get(
    "/employees/{employee_id}/overtime",
    response_model=OvertimeBreakdownResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_overtime_breakdown(
    review: Review,
    tenant_id: TenantId,
    run_id: RunId,
    employee_id: EmployeeId,
) -> OvertimeBreakdownResponse:
    """Get the hours and overtime pay breakdown for one employee."""
    breakdown = await review.get_overtime_breakdown(tenant_id, run_id, employee_id)
    if breakdown is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No line item for this employee in the payroll run",
        )
    return OvertimeBreakdownResponse.model_validate(breakdown)
