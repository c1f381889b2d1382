"""
Admin Financing API Endpoints.

Loans and discounts charged against weekly payouts, driver loan requests
and the admin audit trail.
"""

from fastapi import APIRouter, Depends, status, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from datetime import datetime, timezone
from typing import List, Optional

from conduz.app.db.session import get_db
from conduz.app.models.financing import Financing
from conduz.app.models.financing_request import FinancingRequest
from conduz.app.models.payroll_enums import FinancingStatus, FinancingType, FinancingRequestStatus
from conduz.app.schemas.financing import (
    FinancingCreate, FinancingUpdate, FinancingProofIn, FinancingResponse,
    FinancingListResponse, FinancingReconcileResponse,
    FinancingRequestDecision, FinancingRequestResponse
)
from conduz.app.schemas.audit import AuditLogResponse
from conduz.app.core.guards import require_admin
from conduz.app.domain.payroll.financing_ledger import reconcile_financing
from conduz.app.domain.payroll.financing_service import (
    issue_financing, update_financing, attach_financing_proof, decide_financing_request
)
from conduz.app.services.audit import log_admin_action, get_audit_trail, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Financing"])


@router.post("/financing", response_model=FinancingResponse, status_code=status.HTTP_201_CREATED)
async def create_financing(
    payload: FinancingCreate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Issue a loan or a recurring discount to a driver.

    Active financing is deducted from every weekly record computed afterwards.
    """
    financing = await issue_financing(
        db,
        driver_id=payload.driver_id,
        type=payload.type,
        amount=payload.amount,
        weeks=payload.weeks,
        weekly_amount=payload.weekly_amount,
        weekly_interest=payload.weekly_interest,
        start_date=payload.start_date,
        notes=payload.notes,
        created_by=current_user.get("email") or current_user.get("sub"),
    )

    await log_admin_action(
        db, current_user, AuditAction.FINANCING_CREATED, "financing", financing.id,
        metadata={
            "driver_id": financing.driver_id,
            "type": financing.type.value,
            "amount": payload.amount,
            "weeks": financing.weeks
        },
        commit=False
    )
    await db.commit()

    return financing


@router.get("/financing", response_model=FinancingListResponse)
async def list_financing(
    driver_id: Optional[int] = Query(None),
    financing_status: Optional[FinancingStatus] = Query(None, alias="status"),
    type: Optional[FinancingType] = Query(None),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(Financing).order_by(desc(Financing.start_date), desc(Financing.id))
    if driver_id:
        query = query.where(Financing.driver_id == driver_id)
    if financing_status:
        query = query.where(Financing.status == financing_status)
    if type:
        query = query.where(Financing.type == type)

    result = await db.execute(query)
    financing = result.scalars().all()

    return FinancingListResponse(total=len(financing), financing=financing)


@router.put("/financing/{financing_id}", response_model=FinancingResponse)
async def edit_financing(
    changes: FinancingUpdate,
    financing_id: int = Path(..., description="Financing ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Manual admin edit of a financing record.

    Not serialized with payment commits; reconcile afterwards if a payment
    for the same driver was committed concurrently.
    """
    financing, previous = await update_financing(
        db, financing_id, changes.model_dump(exclude_unset=True), current_user.get("user_id")
    )

    if previous:
        await log_admin_action(
            db, current_user, AuditAction.FINANCING_UPDATED, "financing", financing.id,
            metadata={"previous": previous},
            commit=False
        )
    await db.commit()

    return financing


@router.patch("/financing/{financing_id}/proof", response_model=FinancingResponse)
async def attach_proof(
    proof: FinancingProofIn,
    financing_id: int = Path(..., description="Financing ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    financing = await attach_financing_proof(db, financing_id, proof.url, proof.file_name, proof.uploaded_at)

    await log_admin_action(
        db, current_user, AuditAction.FINANCING_PROOF_ATTACHED, "financing", financing.id,
        metadata={"file_name": proof.file_name},
        commit=False
    )
    await db.commit()

    return financing


@router.post("/financing/{financing_id}/reconcile", response_model=FinancingReconcileResponse)
async def reconcile(
    financing_id: int = Path(..., description="Financing ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Recompute a loan's remaining weeks from the logs of committed payments.
    """
    changed, financing = await reconcile_financing(db, financing_id, datetime.now(timezone.utc))

    if changed:
        await log_admin_action(
            db, current_user, AuditAction.FINANCING_RECONCILED, "financing", financing.id,
            metadata={"remaining_weeks": financing.remaining_weeks, "status": financing.status.value},
            commit=False
        )
    await db.commit()

    return FinancingReconcileResponse(changed=changed, financing=financing)


@router.get("/financing-requests", response_model=List[FinancingRequestResponse])
async def list_financing_requests(
    request_status: Optional[FinancingRequestStatus] = Query(None, alias="status"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(FinancingRequest).order_by(desc(FinancingRequest.created_at), desc(FinancingRequest.id))
    if request_status:
        query = query.where(FinancingRequest.status == request_status)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/financing-requests/{request_id}/decision", response_model=FinancingRequestResponse)
async def decide_request(
    decision: FinancingRequestDecision,
    request_id: int = Path(..., description="Financing request ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve (issuing the loan) or reject a pending driver loan request.
    """
    approve = decision.action == "approve"
    request, financing = await decide_financing_request(
        db, request_id, approve, current_user, weekly_interest=decision.weekly_interest
    )

    await log_admin_action(
        db, current_user,
        AuditAction.FINANCING_REQUEST_APPROVED if approve else AuditAction.FINANCING_REQUEST_REJECTED,
        "financing_request", request.id,
        metadata={"driver_id": request.driver_id, "financing_id": financing.id if financing else None},
        commit=False
    )
    await db.commit()

    return request


@router.get("/audit-logs", response_model=List[AuditLogResponse])
async def list_audit_logs(
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return await get_audit_trail(db, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit)
