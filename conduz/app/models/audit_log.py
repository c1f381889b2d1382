"""
Audit Log Database Model.

Tracks payroll and admin actions for compliance.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from conduz.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking admin actions.
    
    Events logged:
    - PAYMENT_COMMITTED / PAYMENT_PROOF_ATTACHED
    - WEEKLY_RECORD_UPSERTED / WEEKLY_RECORD_CANCELLED
    - FINANCING_CREATED / FINANCING_UPDATED / FINANCING_RECONCILED
    - FINANCING_REQUEST_APPROVED / FINANCING_REQUEST_REJECTED
    """
    __tablename__ = "audit_logs"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)
    
    action = Column(String(100), nullable=False, index=True)
    
    # What the action was performed on
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, index=True, nullable=True)
    
    meta_data = Column(JSON, nullable=True)
    
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    
    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, entity={self.entity_type}:{self.entity_id})>"
