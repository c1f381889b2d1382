"""
Admin Driver API Endpoints.

Driver registry used by the payroll flows.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from conduz.app.db.session import get_db
from conduz.app.models.driver import Driver
from conduz.app.models.user import User
from conduz.app.models.enums import UserRole
from conduz.app.models.payroll_enums import DriverType
from conduz.app.schemas.driver import DriverCreate, DriverUpdate, DriverResponse, DriverListResponse
from conduz.app.core.guards import require_admin
from conduz.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/admin/drivers", tags=["Admin - Drivers"])


async def _validate_user_link(db: AsyncSession, user_id: int) -> None:
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if user.role != UserRole.DRIVER:
        raise HTTPException(status_code=400, detail="Linked user must have the DRIVER role")

    result = await db.execute(select(Driver.id).where(Driver.user_id == user_id))
    if result.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="User is already linked to a driver")


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a driver.
    """
    if driver_data.user_id is not None:
        await _validate_user_link(db, driver_data.user_id)

    driver = Driver(**driver_data.model_dump())
    db.add(driver)
    await db.flush()

    await log_admin_action(
        db, current_user, AuditAction.DRIVER_CREATED, "driver", driver.id,
        metadata={"name": driver.name, "driver_type": driver.driver_type.value},
        commit=False
    )
    await db.commit()
    await db.refresh(driver)

    return driver


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    driver_type: Optional[DriverType] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List drivers, optionally filtered by type and active flag.
    """
    query = select(Driver).order_by(Driver.name)
    if driver_type:
        query = query.where(Driver.driver_type == driver_type)
    if is_active is not None:
        query = query.where(Driver.is_active == is_active)

    result = await db.execute(query)
    drivers = result.scalars().all()

    return DriverListResponse(total=len(drivers), drivers=drivers)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")
    return driver


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    changes: DriverUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a driver. Existing weekly records keep the type they were computed with.
    """
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")

    update_data = changes.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(driver, key, value)

    await log_admin_action(
        db, current_user, AuditAction.DRIVER_UPDATED, "driver", driver.id,
        metadata={key: (value.value if hasattr(value, "value") else value) for key, value in update_data.items()},
        commit=False
    )
    await db.commit()
    await db.refresh(driver)

    return driver
