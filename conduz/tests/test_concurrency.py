"""
Concurrency Tests.

Validates that racing payment commits pay a weekly record at most once.
"""

import asyncio
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from conduz.app.core.exceptions import ConflictError
from conduz.app.db.session import Base
from conduz.app.domain.payroll.payment_service import PaymentService, PaymentInput
from conduz.app.domain.payroll.platform_aggregator import PlatformTotals
from conduz.app.domain.payroll.weeks import parse_week_id
from conduz.app.domain.payroll.weekly_record_service import upsert_weekly_record
from conduz.app.models.driver import Driver
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.financing import Financing
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.models.payroll_enums import DriverType, FinancingType, FinancingStatus, PaymentStatus


@pytest.fixture
async def file_session_factory(tmp_path):
    """Separate connections per session, unlike the shared in-memory database."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}",
        connect_args={"timeout": 5},
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def pending_record(file_session_factory):
    async with file_session_factory() as session:
        now = datetime.now(timezone.utc)
        driver = Driver(name="Bruno Concorrente", driver_type=DriverType.AFFILIATE, rental_fee=Decimal("0"))
        session.add(driver)
        await session.flush()

        record = await upsert_weekly_record(
            session, driver, parse_week_id("2024-W40"),
            PlatformTotals(driver_id=driver.id, uber_cents=50000, bolt_cents=30000, fuel_cents=5000)
        )
        loan = Financing(
            driver_id=driver.id, type=FinancingType.LOAN, amount=Decimal("300"), weeks=3,
            remaining_weeks=3, weekly_interest=Decimal("0"), status=FinancingStatus.ACTIVE,
            start_date=now, created_at=now, updated_at=now,
        )
        session.add(loan)
        await session.commit()
        return record.id, loan.id


async def test_concurrent_commits_pay_once(file_session_factory, pending_record):
    """Two commits for the same record: one pays, the other is rejected."""
    record_id, loan_id = pending_record
    actor = {"user_id": None, "sub": "admin", "email": "admin@conduz.pt"}

    async def attempt():
        async with file_session_factory() as session:
            return await PaymentService.commit_payment(session, record_id, PaymentInput(), actor=actor)

    outcomes = await asyncio.gather(attempt(), attempt(), return_exceptions=True)

    successes = [o for o in outcomes if not isinstance(o, Exception)]
    failures = [o for o in outcomes if isinstance(o, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ConflictError)
    assert failures[0].status_code == 409

    async with file_session_factory() as session:
        payments = await session.execute(select(func.count()).select_from(DriverPayment))
        assert payments.scalar_one() == 1

        record = await session.get(WeeklyRecord, record_id)
        assert record.payment_status == PaymentStatus.PAID

        loan = await session.get(Financing, loan_id)
        assert loan.remaining_weeks == 2


async def test_sequential_retry_conflicts(file_session_factory, pending_record):
    record_id, loan_id = pending_record
    actor = {"user_id": None, "sub": "admin", "email": "admin@conduz.pt"}

    async with file_session_factory() as session:
        await PaymentService.commit_payment(session, record_id, PaymentInput(), actor=actor)

    async with file_session_factory() as session:
        with pytest.raises(ConflictError):
            await PaymentService.commit_payment(session, record_id, PaymentInput(), actor=actor)

    async with file_session_factory() as session:
        loan = await session.get(Financing, loan_id)
        assert loan.remaining_weeks == 2
