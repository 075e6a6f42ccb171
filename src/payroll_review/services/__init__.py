"""Payroll review services."""

from payroll_review.services.issue_service import IssueService
from payroll_review.services.overtime_service import OvertimeBreakdown, OvertimeService
from payroll_review.services.recalculation_service import (
    RecalculationResult,
    RecalculationService,
)
from payroll_review.services.review_service import PreviousRun, ReviewService, ValidationReport
from payroll_review.services.state_machine import (
    InvalidTransitionError,
    VerificationState,
    VerificationStateMachine,
)
from payroll_review.services.verification_service import VerificationService

__all__ = [
    "InvalidTransitionError",
    "IssueService",
    "OvertimeBreakdown",
    "OvertimeService",
    "PreviousRun",
    "RecalculationResult",
    "RecalculationService",
    "ReviewService",
    "ValidationReport",
    "VerificationService",
    "VerificationState",
    "VerificationStateMachine",
]
