"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from payroll_review.review import IssueCategory, IssueType


# ============================================================================
# Payroll run schemas
# ============================================================================


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    run_number: str
    period_start: date
    period_end: date
    pay_date: date
    payment_frequency: str
    status: str
    created_at: datetime
    updated_at: datetime


class LineItemResponse(BaseModel):
    """Schema for a stored payroll line item."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    employee_name: str | None = None
    base_salary: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    overtime_hours: dict[str, Any] = Field(default_factory=dict)
    overtime_pay: Decimal | None = None
    bonuses: Decimal | None = None
    days_worked: Decimal | None = None
    days_absent: Decimal | None = None
    hours_worked: Decimal | None = None
    calculation_hash: str | None = None
    updated_at: datetime


class RecalculationResponse(BaseModel):
    """Schema for a single-employee recalculation."""

    model_config = ConfigDict(from_attributes=True)

    line_item: LineItemResponse
    net_before: Decimal
    net_after: Decimal


class PreviousRunResponse(BaseModel):
    """Schema for the previous comparable run."""

    run: PayrollRunResponse
    line_items: list[LineItemResponse]


# ============================================================================
# Validation schemas
# ============================================================================


class FindingResponse(BaseModel):
    """Schema for one finding of a validation pass."""

    model_config = ConfigDict(from_attributes=True)

    issue_type: IssueType
    category: IssueCategory
    employee_id: UUID
    employee_name: str
    title: str
    description: str
    expected: Decimal | None = None
    actual: Decimal | None = None
    reason: str | None = None


class ValidationReportResponse(BaseModel):
    """Schema for a validation pass result."""

    model_config = ConfigDict(from_attributes=True)

    issues: list[FindingResponse]
    total_issues: int
    errors: int
    warnings: int
    info: int
    persisted: int


class IssueResponse(BaseModel):
    """Schema for a stored validation issue."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    issue_type: str
    category: str
    title: str
    description: str
    expected_amount: Decimal | None = None
    actual_amount: Decimal | None = None
    resolved: bool
    resolved_by: UUID | None = None
    resolved_at: datetime | None = None
    created_at: datetime


class IssueListResponse(BaseModel):
    """Schema for listing stored issues."""

    items: list[IssueResponse]
    total: int


class ResolveIssueRequest(BaseModel):
    """Schema for resolving an issue."""

    resolved_by: UUID


# ============================================================================
# Verification schemas
# ============================================================================


class VerifyRequest(BaseModel):
    """Schema for verifying one employee."""

    verified_by: UUID
    notes: str | None = Field(default=None, max_length=2000)


class FlagRequest(BaseModel):
    """Schema for flagging one employee."""

    flagged_by: UUID
    notes: str | None = Field(default=None, max_length=2000)


class VerifyAllRequest(BaseModel):
    """Schema for verifying every employee in a run."""

    verified_by: UUID


class VerifyAllResponse(BaseModel):
    """Schema for bulk verification result."""

    payroll_run_id: UUID
    verified_count: int


class VerificationStatusResponse(BaseModel):
    """Schema for a stored verification status."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    employee_id: UUID
    status: str
    verified_by: UUID | None = None
    verified_at: datetime | None = None
    notes: str | None = None
    reviewed: bool = False


class VerificationListResponse(BaseModel):
    """Schema for listing verification statuses of a run.

    Employees without an entry are unverified.
    """

    items: list[VerificationStatusResponse]
    reviewed_count: int


# ============================================================================
# Overtime breakdown schemas
# ============================================================================


class OvertimeTierResponse(BaseModel):
    """Schema for one overtime tier."""

    model_config = ConfigDict(from_attributes=True)

    tier: str
    hours: Decimal
    multiplier: Decimal | None = None
    amount: Decimal | None = None


class TimeEntryDetailResponse(BaseModel):
    """Schema for one attendance record."""

    model_config = ConfigDict(from_attributes=True)

    work_date: date
    hours_worked: Decimal


class OvertimeBreakdownResponse(BaseModel):
    """Schema for an employee's hours and overtime breakdown."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    employee_id: UUID
    total_hours: Decimal
    normal_hours: Decimal
    total_overtime_hours: Decimal
    hourly_rate: Decimal
    overtime_pay: Decimal
    tiers: list[OvertimeTierResponse]
    entries: list[TimeEntryDetailResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
