"""
Driver Portal API Endpoints.

Read-only view of a driver's own payroll plus loan requests. Every query
is scoped to the driver profile linked to the authenticated user.
"""

from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from typing import List, Optional

from conduz.app.db.session import get_db
from conduz.app.models.driver import Driver
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.financing import Financing
from conduz.app.models.financing_request import FinancingRequest
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.schemas.driver import DriverResponse
from conduz.app.schemas.weekly_record import WeeklyRecordListResponse
from conduz.app.schemas.payment import DriverPaymentListResponse
from conduz.app.schemas.financing import (
    FinancingListResponse, FinancingRequestCreate, FinancingRequestResponse
)
from conduz.app.core.guards import get_current_driver
from conduz.app.domain.payroll.financing_service import submit_financing_request
from conduz.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/driver", tags=["Driver Portal"])


@router.get("/me", response_model=DriverResponse)
async def get_profile(driver: Driver = Depends(get_current_driver)):
    return driver


@router.get("/weekly-records", response_model=WeeklyRecordListResponse)
async def my_weekly_records(
    week_id: Optional[str] = Query(None),
    driver: Driver = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    query = (
        select(WeeklyRecord)
        .where(WeeklyRecord.driver_id == driver.id)
        .order_by(desc(WeeklyRecord.week_start))
    )
    if week_id:
        query = query.where(WeeklyRecord.week_id == week_id)

    result = await db.execute(query)
    records = result.scalars().all()

    return WeeklyRecordListResponse(total=len(records), records=records)


@router.get("/payments", response_model=DriverPaymentListResponse)
async def my_payments(
    driver: Driver = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(DriverPayment)
        .where(DriverPayment.driver_id == driver.id)
        .order_by(desc(DriverPayment.payment_date), desc(DriverPayment.id))
    )
    payments = result.scalars().all()

    return DriverPaymentListResponse(total=len(payments), payments=payments)


@router.get("/financing", response_model=FinancingListResponse)
async def my_financing(
    driver: Driver = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Financing)
        .where(Financing.driver_id == driver.id)
        .order_by(desc(Financing.start_date), desc(Financing.id))
    )
    financing = result.scalars().all()

    return FinancingListResponse(total=len(financing), financing=financing)


@router.get("/financing-requests", response_model=List[FinancingRequestResponse])
async def my_financing_requests(
    driver: Driver = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(FinancingRequest)
        .where(FinancingRequest.driver_id == driver.id)
        .order_by(desc(FinancingRequest.created_at), desc(FinancingRequest.id))
    )
    return result.scalars().all()


@router.post("/financing-requests", response_model=FinancingRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_financing(
    payload: FinancingRequestCreate,
    driver: Driver = Depends(get_current_driver),
    db: AsyncSession = Depends(get_db)
):
    """
    Ask the fleet for a loan. An admin approves or rejects it later.
    """
    request = await submit_financing_request(db, driver, payload.amount, payload.weeks, payload.reason)

    await log_event(
        db=db,
        action=AuditAction.FINANCING_REQUESTED,
        actor_id=driver.user_id,
        actor_username=driver.email or driver.name,
        entity_type="financing_request",
        entity_id=request.id,
        metadata={"driver_id": driver.id, "amount": payload.amount, "weeks": payload.weeks},
        commit=False
    )
    await db.commit()

    return request
