"""
Driver Weekly Record database model.

One row per (driver, ISO week) holding the payout breakdown.
"""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Enum, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from conduz.app.db.session import Base
from conduz.app.models.payroll_enums import DriverType, PaymentStatus, DataSource


class WeeklyRecord(Base):
    """
    Weekly Record model.
    
    Invariant: net_payout = gross_less_vat - admin_fee - total_expenses,
    where total_expenses = fuel + tolls*renter + rent*renter + financing_total.
    Status flow: PENDING -> PAID (payment commit) or PENDING -> CANCELLED.
    """
    __tablename__ = "weekly_records"
    __table_args__ = (
        UniqueConstraint("driver_id", "week_id", name="uq_weekly_records_driver_week"),
    )
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    
    # Driver
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    driver_name = Column(String(200), nullable=False)
    driver_type = Column(Enum(DriverType), nullable=False)
    
    # ISO week
    week_id = Column(String(8), nullable=False, index=True)  # 2024-W40
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    
    # Platform earnings
    uber_total = Column(Numeric(12, 2), default=0, nullable=False)
    bolt_total = Column(Numeric(12, 2), default=0, nullable=False)
    
    # Computed
    gross_total = Column(Numeric(12, 2), default=0, nullable=False)
    vat_amount = Column(Numeric(12, 2), default=0, nullable=False)
    gross_less_vat = Column(Numeric(12, 2), default=0, nullable=False)
    admin_fee = Column(Numeric(12, 2), default=0, nullable=False)
    
    # Expenses (tolls and rent only deducted from renters)
    fuel = Column(Numeric(12, 2), default=0, nullable=False)
    tolls = Column(Numeric(12, 2), default=0, nullable=False)
    rent = Column(Numeric(12, 2), default=0, nullable=False)
    
    # Financing snapshot for the week
    financing_installment = Column(Numeric(12, 2), default=0, nullable=False)
    financing_interest = Column(Numeric(12, 2), default=0, nullable=False)
    financing_total = Column(Numeric(12, 2), default=0, nullable=False)
    
    total_expenses = Column(Numeric(12, 2), default=0, nullable=False)
    net_payout = Column(Numeric(12, 2), default=0, nullable=False)  # repasse
    
    # Payment
    iban = Column(String(34), nullable=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    
    data_source = Column(Enum(DataSource), default=DataSource.MANUAL, nullable=False)
    notes = Column(Text, nullable=True)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<WeeklyRecord(id={self.id}, driver_id={self.driver_id}, week='{self.week_id}', status='{self.payment_status.value}')>"
