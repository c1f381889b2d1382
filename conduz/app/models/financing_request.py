"""
Financing Request database model.

Loan requests submitted by drivers and decided by an admin.
"""

from sqlalchemy import Column, Integer, Text, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.sql import func
from conduz.app.db.session import Base
from conduz.app.models.payroll_enums import FinancingRequestStatus


class FinancingRequest(Base):
    __tablename__ = "financing_requests"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    
    amount = Column(Numeric(12, 2), nullable=False)
    weeks = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    
    status = Column(Enum(FinancingRequestStatus), default=FinancingRequestStatus.PENDING, nullable=False, index=True)
    financing_id = Column(Integer, ForeignKey('financing.id'), nullable=True)
    decided_by = Column(Integer, ForeignKey('users.id'), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<FinancingRequest(id={self.id}, driver_id={self.driver_id}, status='{self.status.value}')>"
