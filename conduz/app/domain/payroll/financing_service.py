"""
Financing Service (Domain Logic).

Issuing loans / discounts, manual admin edits and the driver loan request
workflow. Does not commit; the caller owns the transaction.

Manual edits are not serialized with payment commits: an edit racing a
commit for the same driver may overwrite a decrement. Run
`reconcile_financing` afterwards when in doubt.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from conduz.app.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from conduz.app.models.driver import Driver
from conduz.app.models.financing import Financing
from conduz.app.models.financing_request import FinancingRequest
from conduz.app.models.payroll_enums import FinancingType, FinancingStatus, FinancingRequestStatus


def _decimal(value) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


async def issue_financing(
    db: AsyncSession,
    driver_id: int,
    type: FinancingType,
    amount,
    weeks: Optional[int] = None,
    weekly_amount=None,
    weekly_interest=0,
    start_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    created_by: Optional[str] = None
) -> Financing:
    """
    Create an ACTIVE financing record for a driver.

    Raises:
        ResourceNotFoundError: Unknown driver
        ValidationError: Loan without a positive number of weeks
    """
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)

    if type == FinancingType.LOAN and not weeks:
        raise ValidationError("Loans require a positive number of weeks", details={"weeks": weeks})

    now = datetime.now(timezone.utc)
    financing = Financing(
        driver_id=driver_id,
        type=type,
        amount=_decimal(amount),
        weeks=weeks,
        weekly_amount=_decimal(weekly_amount),
        weekly_interest=_decimal(weekly_interest or 0),
        remaining_weeks=weeks,
        status=FinancingStatus.ACTIVE,
        start_date=start_date or now,
        notes=notes,
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )
    db.add(financing)
    await db.flush()
    return financing


async def update_financing(db: AsyncSession, financing_id: int, changes: dict, actor_id: Optional[int]) -> tuple:
    """
    Apply a manual admin edit.

    Editing a loan's remaining weeks also sets its status: completed at 0,
    active otherwise.

    Returns:
        (financing, previous values of the changed fields)
    """
    financing = await db.get(Financing, financing_id)
    if not financing:
        raise ResourceNotFoundError("Financing", financing_id)

    now = datetime.now(timezone.utc)
    previous = {}
    for key, value in changes.items():
        if key in ("amount", "weekly_amount", "weekly_interest"):
            value = _decimal(value)
        old = getattr(financing, key)
        if old == value:
            continue
        previous[key] = _jsonable(old)
        setattr(financing, key, value)

    # A loan is completed exactly when no weeks remain
    if financing.type == FinancingType.LOAN and "remaining_weeks" in previous:
        derived = FinancingStatus.COMPLETED if financing.remaining_weeks == 0 else FinancingStatus.ACTIVE
        if financing.status != derived:
            previous.setdefault("status", _jsonable(financing.status))
            financing.status = derived

    if "status" in previous:
        financing.status_updated_at = now
        financing.status_updated_by = actor_id
        if financing.status == FinancingStatus.COMPLETED and financing.end_date is None:
            financing.end_date = now

    financing.updated_at = now
    await db.flush()
    return financing, previous


async def attach_financing_proof(
    db: AsyncSession,
    financing_id: int,
    url: str,
    file_name: Optional[str],
    uploaded_at: Optional[datetime]
) -> Financing:
    financing = await db.get(Financing, financing_id)
    if not financing:
        raise ResourceNotFoundError("Financing", financing_id)

    now = datetime.now(timezone.utc)
    financing.proof_url = url
    financing.proof_file_name = file_name
    financing.proof_uploaded_at = uploaded_at or now
    financing.updated_at = now
    await db.flush()
    return financing


async def submit_financing_request(
    db: AsyncSession,
    driver: Driver,
    amount,
    weeks: int,
    reason: Optional[str] = None
) -> FinancingRequest:
    now = datetime.now(timezone.utc)
    request = FinancingRequest(
        driver_id=driver.id,
        amount=_decimal(amount),
        weeks=weeks,
        reason=reason,
        status=FinancingRequestStatus.PENDING,
        created_at=now,
        updated_at=now,
    )
    db.add(request)
    await db.flush()
    return request


async def decide_financing_request(
    db: AsyncSession,
    request_id: int,
    approve: bool,
    actor: dict,
    weekly_interest=0
) -> tuple:
    """
    Approve (issuing a loan) or reject a PENDING financing request.

    Returns:
        (request, financing or None)

    Raises:
        ConflictError: If the request was already decided
    """
    request = await db.get(FinancingRequest, request_id, with_for_update=True)
    if not request:
        raise ResourceNotFoundError("Financing request", request_id)

    if request.status != FinancingRequestStatus.PENDING:
        raise ConflictError(
            f"Financing request {request_id} is already {request.status.value}",
            details={"request_id": request_id, "status": request.status.value}
        )

    now = datetime.now(timezone.utc)
    financing = None
    if approve:
        financing = await issue_financing(
            db,
            driver_id=request.driver_id,
            type=FinancingType.LOAN,
            amount=request.amount,
            weeks=request.weeks,
            weekly_interest=weekly_interest,
            start_date=now,
            created_by=actor.get("email") or actor.get("sub"),
        )
        request.status = FinancingRequestStatus.APPROVED
        request.financing_id = financing.id
    else:
        request.status = FinancingRequestStatus.REJECTED

    request.decided_by = actor.get("user_id")
    request.decided_at = now
    request.updated_at = now
    await db.flush()
    return request, financing
