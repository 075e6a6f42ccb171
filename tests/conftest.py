"""Pytest fixtures for payroll review tests."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_review.calculators import PayrollCalculator
from payroll_review.config import Settings
from payroll_review.models import (
    Base,
    Employee,
    PayAdjustment,
    PayrollLineItem,
    PayrollRun,
    TimeEntry,
)

# In-memory SQLite shared through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings with deterministic values, independent of the environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test-1.0.0",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        employee_contribution_rate=Decimal("0.063"),
    )


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def reviewer_id() -> UUID:
    return uuid4()


# ============================================================================
# Seed helpers
# ============================================================================


async def add_employee(
    session: AsyncSession,
    tenant_id: UUID,
    first_name: str = "Awa",
    last_name: str = "Ndiaye",
    base_salary: Decimal = Decimal("300000.00"),
    hire_date: date = date(2023, 1, 2),
    termination_date: date | None = None,
) -> Employee:
    employee = Employee(
        id=uuid4(),
        tenant_id=tenant_id,
        first_name=first_name,
        last_name=last_name,
        base_salary=base_salary,
        hire_date=hire_date,
        termination_date=termination_date,
    )
    session.add(employee)
    await session.flush()
    return employee


async def add_run(
    session: AsyncSession,
    tenant_id: UUID,
    period_start: date = date(2024, 1, 1),
    period_end: date = date(2024, 1, 31),
    status: str = "draft",
    payment_frequency: str = "monthly",
    run_number: str = "PR-2024-01",
) -> PayrollRun:
    run = PayrollRun(
        id=uuid4(),
        tenant_id=tenant_id,
        run_number=run_number,
        period_start=period_start,
        period_end=period_end,
        pay_date=period_end,
        payment_frequency=payment_frequency,
        status=status,
    )
    session.add(run)
    await session.flush()
    return run


async def add_time_entry(
    session: AsyncSession,
    employee: Employee,
    work_date: date,
    hours: Decimal = Decimal("8.00"),
    overtime: dict[str, Any] | None = None,
) -> TimeEntry:
    entry = TimeEntry(
        id=uuid4(),
        tenant_id=employee.tenant_id,
        employee_id=employee.id,
        clock_in=datetime(work_date.year, work_date.month, work_date.day, 8, 0, tzinfo=timezone.utc),
        total_hours=hours,
        overtime_breakdown=overtime or {},
    )
    session.add(entry)
    await session.flush()
    return entry


async def add_weekday_attendance(
    session: AsyncSession,
    employee: Employee,
    days: list[date],
    hours: Decimal = Decimal("8.00"),
) -> None:
    for day in days:
        await add_time_entry(session, employee, day, hours)


async def add_adjustment(
    session: AsyncSession,
    employee: Employee,
    run: PayrollRun,
    adjustment_type: str,
    amount: Decimal,
) -> PayAdjustment:
    adjustment = PayAdjustment(
        id=uuid4(),
        tenant_id=employee.tenant_id,
        employee_id=employee.id,
        payroll_run_id=run.id,
        adjustment_type=adjustment_type,
        amount=amount,
    )
    session.add(adjustment)
    await session.flush()
    return adjustment


async def add_line_item(
    session: AsyncSession,
    run: PayrollRun,
    employee_id: UUID | None = None,
    employee_name: str = "Awa Ndiaye",
    net_salary: Decimal = Decimal("100000.00"),
    gross_salary: Decimal | None = None,
    base_salary: Decimal = Decimal("300000.00"),
    overtime_hours: dict[str, Any] | None = None,
    overtime_pay: Decimal = Decimal("0"),
    bonuses: Decimal = Decimal("0"),
    days_worked: Decimal = Decimal("22"),
    days_absent: Decimal = Decimal("0"),
) -> PayrollLineItem:
    line_item = PayrollLineItem(
        id=uuid4(),
        tenant_id=run.tenant_id,
        payroll_run_id=run.id,
        employee_id=employee_id or uuid4(),
        employee_name=employee_name,
        base_salary=base_salary,
        gross_salary=gross_salary if gross_salary is not None else net_salary,
        total_deductions=Decimal("0"),
        net_salary=net_salary,
        overtime_hours=overtime_hours or {},
        overtime_pay=overtime_pay,
        bonuses=bonuses,
        days_worked=days_worked,
        days_absent=days_absent,
        hours_worked=Decimal("176"),
    )
    session.add(line_item)
    await session.flush()
    return line_item


def january_2024_weekdays() -> list[date]:
    """The 23 weekdays of January 2024."""
    return [
        date(2024, 1, day)
        for day in range(1, 32)
        if date(2024, 1, day).weekday() < 5
    ]


@pytest.fixture
async def calculated_run(session: AsyncSession, tenant_id: UUID, settings: Settings):
    """A January run with two employees, calculated by the bulk driver.

    - Awa works every weekday, 6h of rate15 and 2h of rate50 overtime
    - Moussa is hired mid-month and gets a bonus
    """
    run = await add_run(session, tenant_id)

    awa = await add_employee(session, tenant_id, "Awa", "Ndiaye", Decimal("346660.00"))
    days = january_2024_weekdays()
    for day in days:
        overtime = {"rate15": 3, "rate50": 1} if day in (date(2024, 1, 8), date(2024, 1, 9)) else None
        await add_time_entry(session, awa, day, Decimal("8.00"), overtime)

    moussa = await add_employee(
        session,
        tenant_id,
        "Moussa",
        "Diop",
        Decimal("220000.00"),
        hire_date=date(2024, 1, 15),
    )
    await add_weekday_attendance(
        session, moussa, [d for d in days if d >= date(2024, 1, 15)]
    )
    await add_adjustment(session, moussa, run, "bonus", Decimal("15000.00"))

    calculator = PayrollCalculator(session, settings)
    await calculator.run_payroll(tenant_id, run.id)

    return {"run": run, "awa": awa, "moussa": moussa}
