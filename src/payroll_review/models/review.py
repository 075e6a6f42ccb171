"""Derived review records: validation issues and verification status."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_review.models.base import Base, TimestampMixin


class ValidationIssue(Base, TimestampMixin):
    """A persisted anomaly finding for one employee in one run.

    (payroll_run_id, employee_id, category, title) is the natural key;
    repeated validation passes skip rows that already exist.
    """

    __tablename__ = "payroll_validation_issue"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    issue_type: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    expected_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    actual_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_run_id",
            "employee_id",
            "category",
            "title",
            name="payroll_validation_issue_natural_key",
        ),
        CheckConstraint(
            "issue_type IN ('error', 'warning', 'info')",
            name="payroll_validation_issue_type_check",
        ),
        CheckConstraint(
            "category IN ('overtime', 'comparison', 'prorata', 'deduction', 'bonus')",
            name="payroll_validation_issue_category_check",
        ),
        Index("ix_payroll_validation_issue_tenant_run", "tenant_id", "payroll_run_id"),
    )


class VerificationStatus(Base, TimestampMixin):
    """Human verification state for one (run, employee) pair.

    No row means "unverified"; rows are only written by reviewer actions.
    """

    __tablename__ = "payroll_verification_status"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    verified_by: Mapped[UUID | None] = mapped_column(nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_run_id",
            "employee_id",
            name="payroll_verification_status_run_employee_key",
        ),
        CheckConstraint(
            "status IN ('verified', 'flagged', 'unverified', 'auto_ok')",
            name="payroll_verification_status_check",
        ),
        Index("ix_payroll_verification_status_tenant_run", "tenant_id", "payroll_run_id"),
    )
