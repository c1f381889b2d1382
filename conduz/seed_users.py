"""
Database seeding script for initial users.

Creates an ADMIN user and one demo driver with a portal login for
development. Run this script after the database is set up.
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from conduz.app.db.session import AsyncSessionLocal, engine, Base
from conduz.app.core.jwt import token_for_user
from conduz.app.models.user import User
from conduz.app.models.driver import Driver
from conduz.app.models.enums import UserRole
from conduz.app.models.payroll_enums import DriverType
from sqlalchemy import select


async def seed_users():
    """
    Seed initial users.

    Creates:
    - 1 ADMIN user
    - 1 DRIVER user linked to a renter driver profile
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Starting user seeding...")

        result = await db.execute(
            select(User).where(User.username == "admin")
        )
        if result.scalar_one_or_none():
            print("ADMIN user already exists, skipping seeding")
            return

        admin_user = User(
            email="admin@conduz.pt",
            username="admin",
            name="Conduz Admin",
            role=UserRole.ADMIN,
            is_active=True
        )
        db.add(admin_user)
        print("Created ADMIN user (username: admin)")

        driver_user = User(
            email="demo.driver@conduz.pt",
            username="demo.driver",
            name="Demo Driver",
            role=UserRole.DRIVER,
            is_active=True
        )
        db.add(driver_user)
        await db.flush()

        db.add(Driver(
            user_id=driver_user.id,
            name="Demo Driver",
            email=driver_user.email,
            driver_type=DriverType.RENTER,
            rental_fee=Decimal("150.00"),
            iban="PT50000201231234567890154",
            is_active=True
        ))
        print("Created DRIVER user (username: demo.driver) with a renter profile")

        await db.commit()

        print("\nUser seeding completed.")
        print(f"Admin token: {token_for_user(admin_user)}")
        print(f"Driver token: {token_for_user(driver_user)}")


if __name__ == "__main__":
    asyncio.run(seed_users())
