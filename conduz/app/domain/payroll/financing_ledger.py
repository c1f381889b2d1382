"""
Financing Amortization Ledger (Domain Logic).

Computes the weekly financing deduction of a driver and amortizes active
loans when a weekly payment is committed.

`apply_weekly_decrement` never commits: it must run inside the payment
commit transaction so that a rollback undoes every decrement.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from conduz.app.core.exceptions import ResourceNotFoundError
from conduz.app.domain.payroll.money import to_cents, percent_of
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.financing import Financing
from conduz.app.models.payroll_enums import FinancingType, FinancingStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancingDeduction:
    """Weekly financing cost of a driver, in integer cents."""
    installment_cents: int = 0
    interest_percent: Decimal = Decimal("0")
    interest_cents: int = 0
    total_cents: int = 0
    has_loan: bool = False

    @property
    def has_financing(self) -> bool:
        return self.total_cents > 0


@dataclass(frozen=True)
class FinancingLogEntry:
    """One loan touched by a payment commit."""
    financing_id: int
    record_id: int
    type: str
    amount: float
    installments_paid: int
    remaining_installments: int
    completed: bool

    def to_dict(self) -> dict:
        return asdict(self)


def weekly_installment_cents(financing: Financing) -> int:
    """
    Weekly installment of a single financing record.

    An explicit `weekly_amount` wins; loans otherwise spread the principal
    over the remaining (or total) weeks; discounts charge `amount` weekly.
    """
    if financing.weekly_amount is not None and financing.weekly_amount > 0:
        return to_cents(financing.weekly_amount)

    if financing.type == FinancingType.LOAN:
        weeks = financing.remaining_weeks if financing.remaining_weeks is not None else financing.weeks
        if not weeks:
            return 0
        return percent_of(to_cents(financing.amount), Decimal(1) / Decimal(weeks))

    return to_cents(financing.amount)


def compute_weekly_financing(financings: Iterable[Financing]) -> FinancingDeduction:
    """
    Aggregate the weekly deduction over a driver's active financing records.

    Interest percentages of all records are summed and applied once to the
    summed installment, rounded to the cent.
    """
    installment = 0
    interest_percent = Decimal("0")
    has_loan = False

    for financing in financings:
        if financing.status != FinancingStatus.ACTIVE:
            continue
        if financing.type == FinancingType.LOAN:
            has_loan = True
        installment += weekly_installment_cents(financing)
        interest_percent += Decimal(str(financing.weekly_interest or 0))

    interest = percent_of(installment, interest_percent / 100)

    return FinancingDeduction(
        installment_cents=installment,
        interest_percent=interest_percent,
        interest_cents=interest,
        total_cents=installment + interest,
        has_loan=has_loan,
    )


async def get_active_financing(db: AsyncSession, driver_id: int) -> List[Financing]:
    result = await db.execute(
        select(Financing).where(
            Financing.driver_id == driver_id,
            Financing.status == FinancingStatus.ACTIVE
        ).order_by(Financing.id)
    )
    return list(result.scalars().all())


async def apply_weekly_decrement(
    db: AsyncSession,
    driver_id: int,
    record_id: int,
    now: datetime
) -> List[FinancingLogEntry]:
    """
    Decrement every active loan of the driver by one installment.

    Loans are locked (SELECT ... FOR UPDATE) so concurrent commits for the
    same driver serialize on them. Discounts are untouched.

    Args:
        db: Session of the surrounding payment transaction
        driver_id: Driver being paid
        record_id: Weekly record being paid (kept in the log for reconciliation)
        now: Commit timestamp

    Returns:
        One log entry per loan touched
    """
    result = await db.execute(
        select(Financing).where(
            Financing.driver_id == driver_id,
            Financing.status == FinancingStatus.ACTIVE,
            Financing.type == FinancingType.LOAN
        ).order_by(Financing.id).with_for_update()
    )
    loans = result.scalars().all()

    entries = []
    for loan in loans:
        current = loan.remaining_weeks or 0
        remaining = max(0, current - 1)
        completed = remaining == 0

        loan.remaining_weeks = remaining
        loan.updated_at = now
        if completed:
            loan.status = FinancingStatus.COMPLETED
            loan.status_updated_at = now
            loan.end_date = loan.end_date or now
            logger.info("Financing %s of driver %s completed", loan.id, driver_id)
        else:
            logger.info("Financing %s of driver %s: %s weeks remaining", loan.id, driver_id, remaining)

        entries.append(FinancingLogEntry(
            financing_id=loan.id,
            record_id=record_id,
            type=loan.type.value,
            amount=float(loan.amount),
            installments_paid=current - remaining,
            remaining_installments=remaining,
            completed=completed,
        ))

    await db.flush()
    return entries


async def reconcile_financing(db: AsyncSession, financing_id: int, now: datetime) -> Tuple[bool, Financing]:
    """
    Recompute a loan's remaining weeks from the payment logs.

    remaining = weeks - number of distinct weekly records whose payment
    logged an installment for this loan. Fixes status and end date.
    Does not commit.

    Returns:
        (changed, financing)
    """
    financing = await db.get(Financing, financing_id)
    if not financing:
        raise ResourceNotFoundError("Financing", financing_id)

    if financing.type != FinancingType.LOAN or not financing.weeks:
        return False, financing

    result = await db.execute(
        select(DriverPayment.financing_processed).where(DriverPayment.driver_id == financing.driver_id)
    )
    paid_records = set()
    for processed in result.scalars().all():
        for entry in processed or []:
            if entry.get("financing_id") == financing.id and entry.get("installments_paid", 0) > 0:
                paid_records.add(entry.get("record_id"))

    remaining = max(0, financing.weeks - len(paid_records))
    target_status = FinancingStatus.COMPLETED if remaining == 0 else FinancingStatus.ACTIVE

    changed = False
    if financing.remaining_weeks != remaining:
        financing.remaining_weeks = remaining
        changed = True
    if financing.status != target_status:
        financing.status = target_status
        financing.status_updated_at = now
        changed = True
    if remaining == 0 and financing.end_date is None:
        financing.end_date = now
        changed = True

    if changed:
        financing.updated_at = now
        await db.flush()
        logger.info("Financing %s reconciled: %s weeks remaining", financing.id, remaining)

    return changed, financing
