"""
Payment Commit Tests.

PENDING -> PAID transition, DriverPayment creation and loan amortization
as one transaction.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from conduz.app.core.exceptions import ConflictError, ResourceNotFoundError, StorageError, ValidationError
from conduz.app.domain.payroll.payment_service import PaymentService, PaymentInput, PaymentProof
from conduz.app.domain.payroll.weekly_record_service import cancel_weekly_record
from conduz.app.models.audit_log import AuditLog
from conduz.app.models.driver_payment import DriverPayment
from conduz.app.models.financing import Financing
from conduz.app.models.weekly_record import WeeklyRecord
from conduz.app.models.payroll_enums import DriverType, FinancingStatus, PaymentStatus
from conduz.app.services.audit import AuditAction


async def _count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
async def renter_record(make_driver, make_record):
    """Renter week: 649.36 - tolls 20.00 - rent 100.00 = 529.36."""
    driver = await make_driver(name="Carla Renter", driver_type=DriverType.RENTER, rental_fee="100.00")
    record = await make_record(driver, tolls="20.00")
    return driver, record


async def test_renter_record_payout(renter_record):
    _, record = renter_record

    assert record.net_payout == Decimal("529.36")
    assert record.rent == Decimal("100.00")
    assert record.payment_status == PaymentStatus.PENDING


async def test_commit_pays_record_and_decrements_loan(db_session, renter_record, make_financing, admin_actor):
    driver, record = renter_record
    loan = await make_financing(driver, weeks=3)

    result = await PaymentService.commit_payment(
        db_session, record.id, PaymentInput(bonus_amount="25.00", discount_amount=0), actor=admin_actor
    )

    payment = result.payment
    assert payment.base_amount_cents == 52936
    assert payment.bonus_cents == 2500
    assert payment.discount_cents == 0
    assert payment.total_amount_cents == 55436
    assert payment.total_amount == Decimal("554.36")
    assert payment.currency == "EUR"
    assert payment.iban == driver.iban
    assert payment.admin_fee_cents == 5264
    assert payment.created_by["user_id"] == admin_actor["user_id"]
    assert payment.record_snapshot["net_payout"] == 529.36
    assert payment.financing_processed == [{
        "financing_id": loan.id,
        "record_id": record.id,
        "type": "loan",
        "amount": 300.0,
        "installments_paid": 1,
        "remaining_installments": 2,
        "completed": False,
    }]

    assert result.record.payment_status == PaymentStatus.PAID
    assert result.record.payment_date is not None

    stored_loan = await db_session.get(Financing, loan.id, populate_existing=True)
    assert stored_loan.remaining_weeks == 2
    assert stored_loan.status == FinancingStatus.ACTIVE

    audit = await db_session.execute(select(AuditLog).where(AuditLog.action == AuditAction.PAYMENT_COMMITTED))
    entry = audit.scalar_one()
    assert entry.entity_id == record.id
    assert entry.meta_data["total_amount_cents"] == 55436


async def test_second_commit_conflicts_without_side_effects(db_session, renter_record, make_financing, admin_actor):
    driver, record = renter_record
    loan = await make_financing(driver, weeks=3)
    record_id, loan_id = record.id, loan.id

    await PaymentService.commit_payment(db_session, record_id, PaymentInput(bonus_amount="25.00"), actor=admin_actor)

    with pytest.raises(ConflictError) as exc_info:
        await PaymentService.commit_payment(db_session, record_id, PaymentInput(), actor=admin_actor)

    assert exc_info.value.status_code == 409
    assert await _count(db_session, DriverPayment) == 1
    stored_loan = await db_session.get(Financing, loan_id, populate_existing=True)
    assert stored_loan.remaining_weeks == 2


async def test_final_installment_completes_loan(db_session, make_driver, make_record, make_financing, admin_actor):
    driver = await make_driver()
    record = await make_record(driver)
    loan = await make_financing(driver, weeks=4, remaining_weeks=1)

    result = await PaymentService.commit_payment(db_session, record.id, PaymentInput(), actor=admin_actor)

    assert result.payment.financing_processed[0]["completed"] is True
    stored_loan = await db_session.get(Financing, loan.id, populate_existing=True)
    assert stored_loan.remaining_weeks == 0
    assert stored_loan.status == FinancingStatus.COMPLETED
    assert stored_loan.end_date is not None


async def test_non_positive_total_rejected_without_side_effects(
    db_session, make_driver, make_record, make_financing, admin_actor
):
    driver = await make_driver()
    record = await make_record(driver)  # 649.36
    loan = await make_financing(driver, weeks=3)
    record_id, loan_id = record.id, loan.id

    with pytest.raises(ValidationError):
        await PaymentService.commit_payment(
            db_session, record_id, PaymentInput(discount_amount="700.00"), actor=admin_actor
        )

    stored = await db_session.get(WeeklyRecord, record_id, populate_existing=True)
    assert stored.payment_status == PaymentStatus.PENDING
    assert stored.payment_date is None
    assert await _count(db_session, DriverPayment) == 0
    assert await _count(db_session, AuditLog) == 0
    stored_loan = await db_session.get(Financing, loan_id, populate_existing=True)
    assert stored_loan.remaining_weeks == 3


async def test_exactly_zero_total_rejected(db_session, make_driver, make_record, admin_actor):
    driver = await make_driver()
    record = await make_record(driver)

    with pytest.raises(ValidationError):
        await PaymentService.commit_payment(
            db_session, record.id, PaymentInput(discount_amount="649.36"), actor=admin_actor
        )


async def test_negative_record_needs_bonus(db_session, make_driver, make_record, admin_actor):
    driver = await make_driver()
    record = await make_record(driver, fuel="800.00")  # net -100.64
    record_id = record.id

    with pytest.raises(ValidationError):
        await PaymentService.commit_payment(db_session, record_id, PaymentInput(), actor=admin_actor)

    result = await PaymentService.commit_payment(
        db_session, record_id, PaymentInput(bonus_amount="150.00"), actor=admin_actor
    )
    assert result.payment.base_amount_cents == -10064
    assert result.payment.total_amount_cents == 4936


@pytest.mark.parametrize("field", ["bonus_amount", "discount_amount"])
async def test_negative_adjustments_count_as_zero(db_session, make_driver, make_record, admin_actor, field):
    driver = await make_driver()
    record = await make_record(driver)

    result = await PaymentService.commit_payment(
        db_session, record.id, PaymentInput(**{field: "-5.00"}), actor=admin_actor
    )

    assert result.payment.bonus_cents == 0
    assert result.payment.discount_cents == 0
    assert result.payment.total_amount_cents == 64936


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
async def test_non_numeric_adjustment_rejected(db_session, make_driver, make_record, admin_actor, value):
    driver = await make_driver()
    record = await make_record(driver)
    record_id = record.id

    with pytest.raises(ValidationError) as exc_info:
        await PaymentService.commit_payment(
            db_session, record_id, PaymentInput(bonus_amount=value), actor=admin_actor
        )

    assert exc_info.value.details == {"field": "bonus_amount"}
    stored = await db_session.get(WeeklyRecord, record_id, populate_existing=True)
    assert stored.payment_status == PaymentStatus.PENDING


async def test_unknown_record(db_session, admin_actor):
    with pytest.raises(ResourceNotFoundError):
        await PaymentService.commit_payment(db_session, 4242, PaymentInput(), actor=admin_actor)


async def test_cancelled_record_cannot_be_paid(db_session, make_driver, make_record, admin_actor):
    driver = await make_driver()
    record = await make_record(driver)
    await cancel_weekly_record(db_session, record.id)
    await db_session.commit()

    with pytest.raises(ConflictError):
        await PaymentService.commit_payment(db_session, record.id, PaymentInput(), actor=admin_actor)


async def test_storage_failure_rolls_back(db_session, mocker, make_driver, make_record, make_financing, admin_actor):
    driver = await make_driver()
    record = await make_record(driver)
    loan = await make_financing(driver, weeks=3)
    record_id, loan_id = record.id, loan.id

    mocker.patch.object(
        db_session, "commit",
        side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
    )

    with pytest.raises(StorageError) as exc_info:
        await PaymentService.commit_payment(db_session, record_id, PaymentInput(), actor=admin_actor)

    assert exc_info.value.status_code == 503
    stored = await db_session.get(WeeklyRecord, record_id, populate_existing=True)
    assert stored.payment_status == PaymentStatus.PENDING
    assert await _count(db_session, DriverPayment) == 0
    stored_loan = await db_session.get(Financing, loan_id, populate_existing=True)
    assert stored_loan.remaining_weeks == 3


async def test_proof_recorded_at_commit_and_attached_later(db_session, make_driver, make_record, admin_actor):
    driver = await make_driver()
    record = await make_record(driver)
    uploaded_at = datetime(2024, 10, 7, 9, 30, tzinfo=timezone.utc)

    result = await PaymentService.commit_payment(
        db_session, record.id,
        PaymentInput(proof=PaymentProof(url="https://files.conduz.pt/p/1.pdf", file_name="1.pdf", size=2048)),
        actor=admin_actor
    )
    assert result.payment.proof_file_name == "1.pdf"
    assert result.payment.proof_uploaded_at is not None

    payment = await PaymentService.attach_proof(
        db_session, result.payment.id,
        PaymentProof(url="https://files.conduz.pt/p/2.pdf", storage_path="proofs/2.pdf", file_name="2.pdf",
                     size=4096, content_type="application/pdf", uploaded_at=uploaded_at),
        actor=admin_actor
    )

    assert payment.proof_storage_path == "proofs/2.pdf"
    assert payment.proof_file_size == 4096
    assert payment.total_amount_cents == 64936
