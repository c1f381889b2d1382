"""
Driver Schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional, List
from conduz.app.models.payroll_enums import DriverType


class DriverCreate(BaseModel):
    """Schema for registering a driver."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    driver_type: DriverType = DriverType.AFFILIATE
    rental_fee: float = Field(default=0, ge=0, allow_inf_nan=False, description="Weekly rent charged to renters")
    iban: Optional[str] = Field(default=None, max_length=34)
    user_id: Optional[int] = Field(default=None, description="Login user linked to the driver portal")


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    driver_type: Optional[DriverType] = None
    rental_fee: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    iban: Optional[str] = Field(default=None, max_length=34)
    is_active: Optional[bool] = None


class DriverResponse(BaseModel):
    id: int
    user_id: Optional[int]
    name: str
    email: Optional[str]
    driver_type: DriverType
    rental_fee: float
    iban: Optional[str]
    is_active: bool
    created_at: datetime
    
    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    total: int
    drivers: List[DriverResponse]
