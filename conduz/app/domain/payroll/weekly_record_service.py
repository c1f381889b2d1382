"""
Weekly Record Service (Domain Logic).

Builds driver weekly records from platform totals, the driver's contract
type and active financing. Records can be recomputed while PENDING only.
Does not commit; the caller owns the transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conduz.app.core.exceptions import ConflictError, ResourceNotFoundError
from conduz.app.domain.payroll.financing_ledger import compute_weekly_financing, get_active_financing
from conduz.app.domain.payroll.money import to_cents, from_cents
from conduz.app.domain.payroll.payout_calculator import PayoutInputs, calculate_payout
from conduz.app.domain.payroll.platform_aggregator import PlatformTotals, aggregate_platform_entries
from conduz.app.domain.payroll.weeks import IsoWeek
from conduz.app.models.driver import Driver
from conduz.app.models.payroll_enums import DataSource, DriverType, PaymentStatus
from conduz.app.models.weekly_record import WeeklyRecord

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    records: List[WeeklyRecord] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)


async def get_weekly_record(db: AsyncSession, record_id: int) -> WeeklyRecord:
    record = await db.get(WeeklyRecord, record_id)
    if not record:
        raise ResourceNotFoundError("Weekly record", record_id)
    return record


async def upsert_weekly_record(
    db: AsyncSession,
    driver: Driver,
    week: IsoWeek,
    totals: PlatformTotals,
    rent=None,
    data_source: DataSource = DataSource.MANUAL,
    notes: Optional[str] = None
) -> WeeklyRecord:
    """
    Create or recompute the weekly record of a driver.

    Rent defaults to the driver's weekly rental fee for renters.

    Raises:
        ConflictError: If the record for that week is already PAID or CANCELLED
    """
    result = await db.execute(
        select(WeeklyRecord).where(
            WeeklyRecord.driver_id == driver.id,
            WeeklyRecord.week_id == week.week_id
        ).with_for_update()
    )
    record = result.scalar_one_or_none()

    if record and record.payment_status != PaymentStatus.PENDING:
        raise ConflictError(
            f"Weekly record {record.id} is {record.payment_status.value} and cannot be recomputed",
            details={"record_id": record.id, "payment_status": record.payment_status.value}
        )

    if rent is None:
        rent_cents = to_cents(driver.rental_fee) if driver.driver_type == DriverType.RENTER else 0
    else:
        rent_cents = to_cents(rent, "rent")

    financing = compute_weekly_financing(await get_active_financing(db, driver.id))

    breakdown = calculate_payout(PayoutInputs(
        driver_type=driver.driver_type,
        uber_cents=totals.uber_cents,
        bolt_cents=totals.bolt_cents,
        fuel_cents=totals.fuel_cents,
        tolls_cents=totals.tolls_cents,
        rent_cents=rent_cents,
        financing_total_cents=financing.total_cents,
    ))

    now = datetime.now(timezone.utc)
    if record is None:
        record = WeeklyRecord(
            driver_id=driver.id,
            week_id=week.week_id,
            payment_status=PaymentStatus.PENDING,
            created_at=now,
        )
        db.add(record)

    record.driver_name = driver.name
    record.driver_type = driver.driver_type
    record.week_start = week.start
    record.week_end = week.end
    record.tolls = from_cents(totals.tolls_cents)
    record.rent = from_cents(rent_cents)
    record.financing_installment = from_cents(financing.installment_cents)
    record.financing_interest = from_cents(financing.interest_cents)
    for column, value in breakdown.as_amounts().items():
        setattr(record, column, value)
    record.iban = driver.iban
    record.data_source = data_source
    if notes is not None:
        record.notes = notes
    record.updated_at = now

    await db.flush()
    logger.info(
        "Weekly record %s for driver %s week %s: net payout %s",
        record.id, driver.id, week.week_id, record.net_payout
    )
    return record


async def import_platform_week(db: AsyncSession, week: IsoWeek, entries: Iterable) -> ImportResult:
    """
    Aggregate normalized platform entries and upsert one record per driver.

    Unknown drivers and drivers whose record is no longer PENDING are
    reported in `skipped` instead of failing the whole import.
    """
    outcome = ImportResult()
    totals_by_driver = aggregate_platform_entries(entries)
    if not totals_by_driver:
        return outcome

    result = await db.execute(select(Driver).where(Driver.id.in_(totals_by_driver.keys())))
    drivers = {driver.id: driver for driver in result.scalars().all()}

    for driver_id, totals in totals_by_driver.items():
        driver = drivers.get(driver_id)
        if driver is None:
            logger.warning("Skipping platform data for unknown driver %s", driver_id)
            outcome.skipped.append({"driver_id": driver_id, "reason": "Driver not found"})
            continue

        try:
            record = await upsert_weekly_record(db, driver, week, totals, data_source=DataSource.AUTO)
        except ConflictError as exc:
            outcome.skipped.append({"driver_id": driver_id, "reason": exc.message})
            continue

        outcome.records.append(record)

    return outcome


async def cancel_weekly_record(db: AsyncSession, record_id: int) -> WeeklyRecord:
    """
    Cancel a PENDING weekly record.

    Raises:
        ResourceNotFoundError: If the record does not exist
        ConflictError: If the record is not PENDING
    """
    result = await db.execute(
        select(WeeklyRecord).where(WeeklyRecord.id == record_id).with_for_update()
    )
    record = result.scalar_one_or_none()
    if not record:
        raise ResourceNotFoundError("Weekly record", record_id)

    if record.payment_status != PaymentStatus.PENDING:
        raise ConflictError(
            f"Weekly record {record_id} is {record.payment_status.value}, expected pending",
            details={"record_id": record_id, "payment_status": record.payment_status.value}
        )

    record.payment_status = PaymentStatus.CANCELLED
    record.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return record
