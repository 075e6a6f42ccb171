"""Domain errors surfaced to callers of the review engine."""

from __future__ import annotations

from uuid import UUID


class ReviewError(Exception):
    """Base class for payroll review errors."""


class NotFoundError(ReviewError):
    """Raised when a run, line item, or issue does not exist for the tenant."""

    def __init__(self, entity: str, entity_id: UUID | str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class InvalidRunStateError(ReviewError):
    """Raised when a run's status does not allow the requested operation."""

    def __init__(self, run_id: UUID, status: str, operation: str):
        self.run_id = run_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} payroll run {run_id} in status '{status}'"
        )


class CalculationError(ReviewError):
    """Raised when the payroll calculation for an employee fails."""

    def __init__(self, employee_id: UUID, errors: list[str]):
        self.employee_id = employee_id
        self.errors = errors
        super().__init__(
            f"Calculation failed for employee {employee_id}: {'; '.join(errors)}"
        )
