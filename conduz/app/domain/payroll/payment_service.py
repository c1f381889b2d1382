"""
Payment Service (Domain Logic).

The single point where a weekly record moves from PENDING to PAID.

Flow (one database transaction):
1. Normalize bonus / discount amounts (negative counts as 0)
2. Lock and read the stored weekly record (precondition: PENDING)
3. Compute payment totals in integer cents (total must be > 0)
4. Claim the record with a conditional UPDATE (PENDING -> PAID)
5. Amortize the driver's active loans
6. Create the immutable DriverPayment with a record snapshot and loan log
7. Write the audit entry
8. Commit, or roll back everything on any failure

Concurrent commits on the same record: exactly one claim succeeds, the
other observes PAID and fails with ConflictError. The unique constraint on
driver_payments.record_id backs this up.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from conduz.app.core.config import settings
from conduz.app.core.exceptions import (
    AppException,
    ConflictError,
    ResourceNotFoundError,
    StorageError,
    ValidationError,
)
from conduz.app.domain.payroll.financing_ledger import apply_weekly_decrement
from conduz.app.domain.payroll.money import to_cents, from_cents
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.payroll_enums import PaymentStatus
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.services.audit import log_event, AuditAction

logger = logging.getLogger(__name__)


@dataclass
class PaymentProof:
    """Proof-of-payment metadata (the file itself lives in object storage)."""
    url: Optional[str] = None
    storage_path: Optional[str] = None
    file_name: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None


@dataclass
class PaymentInput:
    bonus_amount: object = 0
    discount_amount: object = 0
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    iban: Optional[str] = None
    proof: Optional[PaymentProof] = None


@dataclass
class PaymentCommitResult:
    record: WeeklyRecord
    payment: DriverPayment


def _as_utc(value: Optional[datetime], default: datetime) -> datetime:
    if value is None:
        return default
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _adjustment_cents(value, field: str) -> int:
    """Bonus / discount in cents; negative adjustments count as 0."""
    return max(0, to_cents(value, field))


def snapshot_record(record: WeeklyRecord) -> dict:
    """JSON-safe copy of a weekly record as it is at payment time."""
    snapshot = {}
    for column in WeeklyRecord.__table__.columns:
        value = getattr(record, column.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        elif isinstance(value, Decimal):
            value = float(value)
        snapshot[column.key] = value
    return snapshot


def _apply_proof(payment: DriverPayment, proof: PaymentProof, now: datetime) -> None:
    payment.proof_url = proof.url
    payment.proof_storage_path = proof.storage_path
    payment.proof_file_name = proof.file_name
    payment.proof_file_size = max(0, int(proof.size)) if proof.size is not None else None
    payment.proof_content_type = proof.content_type
    payment.proof_uploaded_at = _as_utc(proof.uploaded_at, now)


class PaymentService:

    @staticmethod
    async def commit_payment(
        db: AsyncSession,
        record_id: int,
        payment_input: PaymentInput,
        actor: dict
    ) -> PaymentCommitResult:
        """
        Mark a weekly record as paid and create its DriverPayment.

        Commits on success; rolls back every effect on failure.

        Args:
            db: Database session (transaction owned by this call)
            record_id: ID of the weekly record to pay
            payment_input: Bonus, discount, date, notes, IBAN and proof
            actor: Authenticated user payload (user_id, sub, email)

        Returns:
            PaymentCommitResult with the updated record and the new payment

        Raises:
            ValidationError: Non-numeric amounts or a non-positive total
            ResourceNotFoundError: Unknown record
            ConflictError: Record already paid or cancelled
            StorageError: The transaction could not complete
        """
        try:
            result = await PaymentService._commit(db, record_id, payment_input, actor)
            await db.commit()
        except AppException:
            await db.rollback()
            raise
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("Payment for weekly record %s rejected by unique constraint: %s", record_id, exc)
            raise ConflictError(
                "Record already marked as paid.",
                details={"record_id": record_id}
            )
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Payment transaction for weekly record %s failed: %s", record_id, exc)
            raise StorageError("Failed to register payment.", details={"record_id": record_id}) from exc

        logger.info(
            "Weekly record %s paid: payment %s total %s cents, %s financing updates",
            record_id, result.payment.id, result.payment.total_amount_cents,
            len(result.payment.financing_processed)
        )
        return result

    @staticmethod
    async def _commit(
        db: AsyncSession,
        record_id: int,
        payment_input: PaymentInput,
        actor: dict
    ) -> PaymentCommitResult:
        bonus_cents = _adjustment_cents(payment_input.bonus_amount, "bonus_amount")
        discount_cents = _adjustment_cents(payment_input.discount_amount, "discount_amount")

        # 1. Live stored record, locked for the rest of the transaction
        result = await db.execute(
            select(WeeklyRecord)
            .where(WeeklyRecord.id == record_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if not record:
            raise ResourceNotFoundError("Weekly record", record_id)

        if record.payment_status != PaymentStatus.PENDING:
            raise ConflictError(
                f"Record already marked as {record.payment_status.value}.",
                details={"record_id": record_id, "payment_status": record.payment_status.value}
            )

        # 2. Amounts
        base_cents = to_cents(record.net_payout, "net_payout")
        total_cents = base_cents + bonus_cents - discount_cents
        if total_cents <= 0:
            raise ValidationError(
                "Payment total must be greater than zero.",
                details={"record_id": record_id, "total_amount_cents": total_cents}
            )

        now = datetime.now(timezone.utc)
        payment_date = _as_utc(payment_input.payment_date, now)

        # 3. Claim: only one transaction can move the record out of PENDING
        claim = await db.execute(
            update(WeeklyRecord)
            .where(
                WeeklyRecord.id == record_id,
                WeeklyRecord.payment_status == PaymentStatus.PENDING
            )
            .values(payment_status=PaymentStatus.PAID, payment_date=payment_date, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            raise ConflictError("Record already marked as paid.", details={"record_id": record_id})
        await db.refresh(record)

        # 4. Loan amortization inside the same transaction
        entries = await apply_weekly_decrement(db, record.driver_id, record.id, now)
        financing_processed = [entry.to_dict() for entry in entries]

        # 5. Payment entity, inserted once and never updated by this flow
        admin_fee_cents = to_cents(record.admin_fee)
        payment = DriverPayment(
            record_id=record.id,
            driver_id=record.driver_id,
            driver_name=record.driver_name,
            week_id=record.week_id,
            week_start=record.week_start,
            week_end=record.week_end,
            currency=settings.currency,
            base_amount=from_cents(base_cents),
            base_amount_cents=base_cents,
            bonus_amount=from_cents(bonus_cents),
            bonus_cents=bonus_cents,
            discount_amount=from_cents(discount_cents),
            discount_cents=discount_cents,
            total_amount=from_cents(total_cents),
            total_amount_cents=total_cents,
            admin_fee_percentage=settings.admin_fee_rate * 100,
            admin_fee_value=from_cents(admin_fee_cents),
            admin_fee_cents=admin_fee_cents,
            iban=payment_input.iban or record.iban,
            payment_date=payment_date,
            notes=payment_input.notes.strip() if payment_input.notes else None,
            created_by={
                "user_id": actor.get("user_id"),
                "username": actor.get("sub"),
                "email": actor.get("email"),
            },
            record_snapshot=snapshot_record(record),
            financing_processed=financing_processed,
            created_at=now,
            updated_at=now,
        )
        if payment_input.proof:
            _apply_proof(payment, payment_input.proof, now)

        db.add(payment)
        await db.flush()

        # 6. Audit
        await log_event(
            db=db,
            action=AuditAction.PAYMENT_COMMITTED,
            actor_id=actor.get("user_id"),
            actor_username=actor.get("sub"),
            entity_type="weekly_record",
            entity_id=record.id,
            metadata={
                "payment_id": payment.id,
                "driver_id": record.driver_id,
                "week_id": record.week_id,
                "total_amount_cents": total_cents,
                "financing_processed": payment.financing_processed,
            },
            commit=False
        )

        return PaymentCommitResult(record=record, payment=payment)

    @staticmethod
    async def attach_proof(
        db: AsyncSession,
        payment_id: int,
        proof: PaymentProof,
        actor: dict
    ) -> DriverPayment:
        """
        Attach proof-of-payment metadata to an existing payment.

        This is the only mutation a DriverPayment accepts after creation.
        """
        payment = await db.get(DriverPayment, payment_id)
        if not payment:
            raise ResourceNotFoundError("Payment", payment_id)

        now = datetime.now(timezone.utc)
        _apply_proof(payment, proof, now)
        payment.updated_at = now

        await log_event(
            db=db,
            action=AuditAction.PAYMENT_PROOF_ATTACHED,
            actor_id=actor.get("user_id"),
            actor_username=actor.get("sub"),
            entity_type="driver_payment",
            entity_id=payment.id,
            metadata={"file_name": proof.file_name, "storage_path": proof.storage_path},
            commit=False
        )
        await db.commit()
        return payment
