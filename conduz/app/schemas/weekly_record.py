"""
Weekly Record Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from conduz.app.models.payroll_enums import DriverType, PaymentStatus, DataSource


class WeeklyRecordUpsert(BaseModel):
    """
    Aggregated weekly totals for one driver.
    
    Rent defaults to the driver's weekly rental fee when omitted.
    """
    driver_id: int
    week_id: str = Field(..., examples=["2024-W40"])
    uber_total: float = Field(default=0, ge=0, allow_inf_nan=False)
    bolt_total: float = Field(default=0, ge=0, allow_inf_nan=False)
    fuel: float = Field(default=0, ge=0, allow_inf_nan=False, description="myprio fuel cost")
    tolls: float = Field(default=0, ge=0, allow_inf_nan=False, description="ViaVerde tolls (renters only)")
    rent: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, description="Weekly rent (renters only)")
    notes: Optional[str] = None


class PlatformEntry(BaseModel):
    """Normalized weekly total of one platform account."""
    driver_id: int
    platform: str = Field(..., description="uber, bolt, myprio or viaverde")
    total_value: float = Field(..., ge=0, allow_inf_nan=False)
    total_trips: int = Field(default=0, ge=0)
    reference_id: Optional[str] = None


class WeeklyImportRequest(BaseModel):
    week_id: str = Field(..., examples=["2024-W40"])
    entries: List[PlatformEntry]


class WeeklyRecordResponse(BaseModel):
    id: int
    driver_id: int
    driver_name: str
    driver_type: DriverType
    week_id: str
    week_start: date
    week_end: date
    uber_total: float
    bolt_total: float
    gross_total: float
    vat_amount: float
    gross_less_vat: float
    admin_fee: float
    fuel: float
    tolls: float
    rent: float
    financing_installment: float
    financing_interest: float
    financing_total: float
    total_expenses: float
    net_payout: float
    iban: Optional[str]
    payment_status: PaymentStatus
    payment_date: Optional[datetime]
    data_source: DataSource
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class WeeklyRecordListResponse(BaseModel):
    total: int
    records: List[WeeklyRecordResponse]


class SkippedEntry(BaseModel):
    driver_id: int
    reason: str


class WeeklyImportResponse(BaseModel):
    week_id: str
    records: List[WeeklyRecordResponse]
    skipped: List[SkippedEntry]
