"""
Admin Weekly Records & Payments API Endpoints.

Weekly record ingestion, listing, cancellation and the payment commit.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from typing import Optional

from conduz.app.db.session import get_db
from conduz.app.models.driver import Driver
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.models.payroll_enums import PaymentStatus
from conduz.app.schemas.weekly_record import (
    WeeklyRecordUpsert, WeeklyImportRequest, WeeklyImportResponse,
    WeeklyRecordResponse, WeeklyRecordListResponse
)
from conduz.app.schemas.payment import (
    PaymentCommitRequest, PaymentCommitResponse, PaymentProofIn,
    DriverPaymentResponse, DriverPaymentListResponse
)
from conduz.app.core.guards import require_admin
from conduz.app.domain.payroll.money import to_cents
from conduz.app.domain.payroll.platform_aggregator import PlatformTotals
from conduz.app.domain.payroll.weeks import parse_week_id
from conduz.app.domain.payroll.weekly_record_service import (
    upsert_weekly_record, import_platform_week, cancel_weekly_record, get_weekly_record
)
from conduz.app.domain.payroll.payment_service import PaymentService, PaymentInput, PaymentProof
from conduz.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Weekly Payroll"])


def _proof(proof_in: Optional[PaymentProofIn]) -> Optional[PaymentProof]:
    if proof_in is None:
        return None
    return PaymentProof(**proof_in.model_dump())


@router.post("/weekly-records", response_model=WeeklyRecordResponse)
async def upsert_record(
    payload: WeeklyRecordUpsert,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or recompute a driver's weekly record from aggregated totals.

    Returns 409 if the record for that week is already paid or cancelled.
    """
    week = parse_week_id(payload.week_id)

    driver = await db.get(Driver, payload.driver_id)
    if not driver:
        raise HTTPException(status_code=404, detail="Driver not found")

    totals = PlatformTotals(
        driver_id=driver.id,
        uber_cents=to_cents(payload.uber_total, "uber_total"),
        bolt_cents=to_cents(payload.bolt_total, "bolt_total"),
        fuel_cents=to_cents(payload.fuel, "fuel"),
        tolls_cents=to_cents(payload.tolls, "tolls"),
    )
    record = await upsert_weekly_record(db, driver, week, totals, rent=payload.rent, notes=payload.notes)

    await log_admin_action(
        db, current_user, AuditAction.WEEKLY_RECORD_UPSERTED, "weekly_record", record.id,
        metadata={"driver_id": driver.id, "week_id": week.week_id, "net_payout": float(record.net_payout)},
        commit=False
    )
    await db.commit()

    return record


@router.post("/weekly-records/import", response_model=WeeklyImportResponse)
async def import_week(
    payload: WeeklyImportRequest,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Aggregate normalized platform entries (Uber, Bolt, myprio, ViaVerde)
    into one weekly record per driver.
    """
    week = parse_week_id(payload.week_id)
    outcome = await import_platform_week(db, week, payload.entries)

    await log_admin_action(
        db, current_user, AuditAction.WEEKLY_RECORDS_IMPORTED, "week", None,
        metadata={
            "week_id": week.week_id,
            "records": [record.id for record in outcome.records],
            "skipped": outcome.skipped
        },
        commit=False
    )
    await db.commit()

    return WeeklyImportResponse(week_id=week.week_id, records=outcome.records, skipped=outcome.skipped)


@router.get("/weekly-records", response_model=WeeklyRecordListResponse)
async def list_records(
    week_id: Optional[str] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    driver_id: Optional[int] = Query(None),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(WeeklyRecord).order_by(desc(WeeklyRecord.week_start), WeeklyRecord.driver_name)
    if week_id:
        query = query.where(WeeklyRecord.week_id == week_id)
    if payment_status:
        query = query.where(WeeklyRecord.payment_status == payment_status)
    if driver_id:
        query = query.where(WeeklyRecord.driver_id == driver_id)

    result = await db.execute(query)
    records = result.scalars().all()

    return WeeklyRecordListResponse(total=len(records), records=records)


@router.get("/weekly-records/{record_id}", response_model=WeeklyRecordResponse)
async def get_record(
    record_id: int = Path(..., description="Weekly record ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await get_weekly_record(db, record_id)


@router.post("/weekly-records/{record_id}/cancel", response_model=WeeklyRecordResponse)
async def cancel_record(
    record_id: int = Path(..., description="Weekly record ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a PENDING weekly record. Cancelled records can never be paid.
    """
    record = await cancel_weekly_record(db, record_id)

    await log_admin_action(
        db, current_user, AuditAction.WEEKLY_RECORD_CANCELLED, "weekly_record", record.id,
        metadata={"driver_id": record.driver_id, "week_id": record.week_id},
        commit=False
    )
    await db.commit()

    return record


@router.post("/weekly-records/{record_id}/payment", response_model=PaymentCommitResponse)
async def commit_payment(
    payload: PaymentCommitRequest,
    record_id: int = Path(..., description="Weekly record ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Pay a PENDING weekly record.

    Marks the record paid, creates the driver payment and amortizes the
    driver's active loans atomically. 409 if the record was already paid.
    """
    result = await PaymentService.commit_payment(
        db,
        record_id,
        PaymentInput(
            bonus_amount=payload.bonus_amount,
            discount_amount=payload.discount_amount,
            payment_date=payload.payment_date,
            notes=payload.notes,
            iban=payload.iban,
            proof=_proof(payload.proof),
        ),
        actor=current_user
    )

    return PaymentCommitResponse(record=result.record, payment=result.payment)


@router.get("/payments", response_model=DriverPaymentListResponse)
async def list_payments(
    week_id: Optional[str] = Query(None),
    driver_id: Optional[int] = Query(None),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(DriverPayment).order_by(desc(DriverPayment.payment_date), desc(DriverPayment.id))
    if week_id:
        query = query.where(DriverPayment.week_id == week_id)
    if driver_id:
        query = query.where(DriverPayment.driver_id == driver_id)

    result = await db.execute(query)
    payments = result.scalars().all()

    return DriverPaymentListResponse(total=len(payments), payments=payments)


@router.get("/payments/{payment_id}", response_model=DriverPaymentResponse)
async def get_payment(
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    payment = await db.get(DriverPayment, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


@router.patch("/payments/{payment_id}/proof", response_model=DriverPaymentResponse)
async def attach_payment_proof(
    proof: PaymentProofIn,
    payment_id: int = Path(..., description="Payment ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Attach proof-of-payment metadata after the fact.
    """
    return await PaymentService.attach_proof(db, payment_id, _proof(proof), actor=current_user)
