"""API routes."""

from payroll_review.api.routes.health import router as health_router
from payroll_review.api.routes.payroll_review import router as payroll_review_router

__all__ = ["health_router", "payroll_review_router"]
