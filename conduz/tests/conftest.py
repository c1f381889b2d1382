"""
Centralized Test Configuration.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from conduz.app.main import app
from conduz.app.db.session import get_db, Base
from conduz.app.core.jwt import token_for_user
from conduz.app.models.user import User
from conduz.app.models.enums import UserRole
from conduz.app.models.driver import Driver
from conduz.app.models.financing import Financing
from conduz.app.models.payroll_enums import DriverType, FinancingType, FinancingStatus
from conduz.app.domain.payroll.platform_aggregator import PlatformTotals
from conduz.app.domain.payroll.weeks import parse_week_id
from conduz.app.domain.payroll.weekly_record_service import upsert_weekly_record
from conduz.app.domain.payroll.money import to_cents

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Route the application's sessions to the test database."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {token_for_user(user)}"}


@pytest.fixture
async def admin_user(db_session):
    admin = User(
        email="admin@conduz.pt",
        username="admin",
        name="Conduz Admin",
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(admin)
    await db_session.commit()
    return admin


@pytest.fixture
def admin_actor(admin_user):
    """JWT payload of the admin, as resolved by get_current_user."""
    return {"sub": admin_user.username, "user_id": admin_user.id, "role": "ADMIN", "email": admin_user.email}


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def make_driver(db_session):
    """Factory creating driver profiles, optionally linked to a DRIVER login."""

    async def _make(
        name="Ana Motorista",
        driver_type=DriverType.AFFILIATE,
        rental_fee="0",
        iban="PT50000201231234567890154",
        with_login=False,
    ):
        user = None
        if with_login:
            username = name.lower().replace(" ", ".")
            user = User(
                email=f"{username}@drivers.conduz.pt",
                username=username,
                name=name,
                role=UserRole.DRIVER,
                is_active=True,
            )
            db_session.add(user)
            await db_session.flush()

        driver = Driver(
            user_id=user.id if user else None,
            name=name,
            email=user.email if user else None,
            driver_type=driver_type,
            rental_fee=Decimal(rental_fee),
            iban=iban,
            is_active=True,
        )
        db_session.add(driver)
        await db_session.commit()
        return (driver, user) if with_login else driver

    return _make


@pytest.fixture
def make_financing(db_session):
    """Factory creating ACTIVE financing records directly."""

    async def _make(driver, type=FinancingType.LOAN, amount="300", weeks=3, remaining_weeks=None,
                    weekly_amount=None, weekly_interest="0"):
        now = datetime.now(timezone.utc)
        financing = Financing(
            driver_id=driver.id,
            type=type,
            amount=Decimal(amount),
            weeks=weeks,
            weekly_amount=Decimal(weekly_amount) if weekly_amount is not None else None,
            weekly_interest=Decimal(weekly_interest),
            remaining_weeks=weeks if remaining_weeks is None else remaining_weeks,
            status=FinancingStatus.ACTIVE,
            start_date=now,
            created_at=now,
            updated_at=now,
        )
        db_session.add(financing)
        await db_session.commit()
        return financing

    return _make


@pytest.fixture
def make_record(db_session):
    """Factory computing and storing a PENDING weekly record."""

    async def _make(driver, week_id="2024-W40", uber="500.00", bolt="300.00", fuel="50.00",
                    tolls="0", rent=None):
        totals = PlatformTotals(
            driver_id=driver.id,
            uber_cents=to_cents(uber),
            bolt_cents=to_cents(bolt),
            fuel_cents=to_cents(fuel),
            tolls_cents=to_cents(tolls),
        )
        record = await upsert_weekly_record(db_session, driver, parse_week_id(week_id), totals, rent=rent)
        await db_session.commit()
        return record

    return _make


@pytest.fixture
async def driver_account(make_driver):
    """Renter driver with a portal login: (driver, auth headers)."""
    driver, user = await make_driver(
        name="Joana Silva", driver_type=DriverType.RENTER, rental_fee="100.00", with_login=True
    )
    return driver, auth_headers(user)
