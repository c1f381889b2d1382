"""
Driver database model.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Numeric, ForeignKey
from sqlalchemy.sql import func
from conduz.app.db.session import Base
from conduz.app.models.payroll_enums import DriverType


class Driver(Base):
    """
    Driver model.
    
    Affiliates bring their own vehicle; renters drive a company vehicle and
    are charged `rental_fee` per week plus toll pass-through.
    """
    __tablename__ = "drivers"
    
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, unique=True, index=True)
    
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    driver_type = Column(Enum(DriverType), default=DriverType.AFFILIATE, nullable=False)
    rental_fee = Column(Numeric(12, 2), default=0, nullable=False)
    iban = Column(String(34), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    
    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.name}', type='{self.driver_type.value}')>"
