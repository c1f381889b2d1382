"""
Payment Schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List, Dict, Any
from conduz.app.schemas.weekly_record import WeeklyRecordResponse


class PaymentProofIn(BaseModel):
    """Proof-of-payment metadata of an uploaded file."""
    url: Optional[str] = Field(default=None, max_length=1024)
    storage_path: Optional[str] = Field(default=None, max_length=1024)
    file_name: Optional[str] = Field(default=None, max_length=255)
    size: Optional[int] = Field(default=None, ge=0)
    content_type: Optional[str] = Field(default=None, max_length=100)
    uploaded_at: Optional[datetime] = None


class PaymentCommitRequest(BaseModel):
    """
    Admin request to pay a weekly record.
    
    Negative bonus or discount values are treated as 0 by the payment service.
    """
    bonus_amount: float = Field(default=0, allow_inf_nan=False)
    discount_amount: float = Field(default=0, allow_inf_nan=False)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    iban: Optional[str] = Field(default=None, max_length=34)
    proof: Optional[PaymentProofIn] = None


class FinancingProcessedEntry(BaseModel):
    financing_id: int
    record_id: int
    type: str
    amount: float
    installments_paid: int
    remaining_installments: int
    completed: bool


class DriverPaymentResponse(BaseModel):
    id: int
    record_id: int
    driver_id: int
    driver_name: str
    week_id: str
    week_start: date
    week_end: date
    currency: str
    base_amount: float
    base_amount_cents: int
    bonus_amount: float
    bonus_cents: int
    discount_amount: float
    discount_cents: int
    total_amount: float
    total_amount_cents: int
    admin_fee_percentage: float
    admin_fee_value: float
    admin_fee_cents: int
    iban: Optional[str]
    payment_date: datetime
    notes: Optional[str]
    proof_url: Optional[str]
    proof_storage_path: Optional[str]
    proof_file_name: Optional[str]
    proof_file_size: Optional[int]
    proof_content_type: Optional[str]
    proof_uploaded_at: Optional[datetime]
    created_by: Optional[Dict[str, Any]]
    record_snapshot: Dict[str, Any]
    financing_processed: List[FinancingProcessedEntry]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class PaymentCommitResponse(BaseModel):
    record: WeeklyRecordResponse
    payment: DriverPaymentResponse


class DriverPaymentListResponse(BaseModel):
    total: int
    payments: List[DriverPaymentResponse]
