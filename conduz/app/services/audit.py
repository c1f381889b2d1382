"""
Audit logging service for tracking payroll and admin actions.

Provides centralized logging for compliance monitoring.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from conduz.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"

    # Weekly records
    WEEKLY_RECORD_UPSERTED = "WEEKLY_RECORD_UPSERTED"
    WEEKLY_RECORDS_IMPORTED = "WEEKLY_RECORDS_IMPORTED"
    WEEKLY_RECORD_CANCELLED = "WEEKLY_RECORD_CANCELLED"

    # Payments
    PAYMENT_COMMITTED = "PAYMENT_COMMITTED"
    PAYMENT_PROOF_ATTACHED = "PAYMENT_PROOF_ATTACHED"

    # Financing
    FINANCING_CREATED = "FINANCING_CREATED"
    FINANCING_UPDATED = "FINANCING_UPDATED"
    FINANCING_PROOF_ATTACHED = "FINANCING_PROOF_ATTACHED"
    FINANCING_RECONCILED = "FINANCING_RECONCILED"
    FINANCING_REQUESTED = "FINANCING_REQUESTED"
    FINANCING_REQUEST_APPROVED = "FINANCING_REQUEST_APPROVED"
    FINANCING_REQUEST_REJECTED = "FINANCING_REQUEST_REJECTED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True
) -> AuditLog:
    """
    Log an admin event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        entity_type: Kind of entity acted upon (e.g. "weekly_record")
        entity_id: ID of the entity acted upon
        metadata: Additional context as JSON
        commit: Commit immediately. Pass False to write the entry as part of
            the caller's transaction.

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata
    )

    db.add(audit_log)
    if commit:
        await db.commit()
        await db.refresh(audit_log)
    else:
        await db.flush()

    return audit_log


async def log_admin_action(
    db: AsyncSession,
    current_user: dict,
    action: str,
    entity_type: str,
    entity_id: Optional[int],
    metadata: Optional[Dict[str, Any]] = None,
    commit: bool = True
) -> AuditLog:
    """Log an action performed by the authenticated user (JWT payload)."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
        commit=commit
    )


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
