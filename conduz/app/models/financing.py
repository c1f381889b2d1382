"""
Financing database model.

Loans and recurring discounts issued to drivers.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.sql import func
from conduz.app.db.session import Base
from conduz.app.models.payroll_enums import FinancingType, FinancingStatus


class Financing(Base):
    """
    Financing model.
    
    For loans `amount` is the principal, amortized over `weeks`; every paid
    weekly record decrements `remaining_weeks` by one until it reaches 0,
    which completes the loan. For discounts `amount` is the weekly value and
    nothing is amortized.
    """
    __tablename__ = "financing"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    
    type = Column(Enum(FinancingType), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    weeks = Column(Integer, nullable=True)  # None for open-ended discounts
    weekly_amount = Column(Numeric(12, 2), nullable=True)  # Explicit installment override
    weekly_interest = Column(Numeric(6, 2), default=0, nullable=False)  # % on the installment
    remaining_weeks = Column(Integer, nullable=True)
    
    status = Column(Enum(FinancingStatus), default=FinancingStatus.ACTIVE, nullable=False, index=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    
    # Proof of transfer to the driver
    proof_url = Column(String(1024), nullable=True)
    proof_file_name = Column(String(255), nullable=True)
    proof_uploaded_at = Column(DateTime(timezone=True), nullable=True)
    
    notes = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    status_updated_at = Column(DateTime(timezone=True), nullable=True)
    status_updated_by = Column(Integer, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Financing(id={self.id}, driver_id={self.driver_id}, type='{self.type.value}', remaining={self.remaining_weeks})>"
