"""
Driver Payment database model.

Append-only record of a committed weekly payment.
"""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Numeric, ForeignKey, JSON
from sqlalchemy.sql import func
from conduz.app.db.session import Base


class DriverPayment(Base):
    """
    Driver Payment model.
    
    Exactly one per weekly record (unique record_id). Amounts are stored in
    currency units and integer cents; the cents columns are authoritative.
    NO updates allowed except attaching proof-of-payment metadata.
    """
    __tablename__ = "driver_payments"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey('weekly_records.id'), nullable=False, unique=True, index=True)
    
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    driver_name = Column(String(200), nullable=False)
    week_id = Column(String(8), nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    
    # Financials
    currency = Column(String(3), default="EUR", nullable=False)
    base_amount = Column(Numeric(12, 2), nullable=False)
    base_amount_cents = Column(Integer, nullable=False)
    bonus_amount = Column(Numeric(12, 2), default=0, nullable=False)
    bonus_cents = Column(Integer, default=0, nullable=False)
    discount_amount = Column(Numeric(12, 2), default=0, nullable=False)
    discount_cents = Column(Integer, default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    total_amount_cents = Column(Integer, nullable=False)
    
    # Admin fee frozen at payment time
    admin_fee_percentage = Column(Numeric(5, 2), nullable=False)
    admin_fee_value = Column(Numeric(12, 2), nullable=False)
    admin_fee_cents = Column(Integer, nullable=False)
    
    iban = Column(String(34), nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    
    # Proof of payment
    proof_url = Column(String(1024), nullable=True)
    proof_storage_path = Column(String(1024), nullable=True)
    proof_file_name = Column(String(255), nullable=True)
    proof_file_size = Column(Integer, nullable=True)
    proof_content_type = Column(String(100), nullable=True)
    proof_uploaded_at = Column(DateTime(timezone=True), nullable=True)
    
    created_by = Column(JSON, nullable=True)  # {"user_id", "username", "email"}
    record_snapshot = Column(JSON, nullable=False)
    financing_processed = Column(JSON, nullable=False, default=list)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<DriverPayment(id={self.id}, record_id={self.record_id}, total={self.total_amount})>"
