"""
Financing Schemas.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Optional, List, Literal
from conduz.app.models.payroll_enums import FinancingType, FinancingStatus, FinancingRequestStatus


class FinancingCreate(BaseModel):
    """
    Schema for issuing a loan or discount to a driver.

    Loans need a number of weeks; discounts may be open-ended.
    """
    driver_id: int
    type: FinancingType
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    weeks: Optional[int] = Field(default=None, ge=1)
    weekly_amount: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    weekly_interest: float = Field(default=0, ge=0, le=100, allow_inf_nan=False, description="% on the weekly installment")
    start_date: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def loan_needs_weeks(self):
        if self.type == FinancingType.LOAN and not self.weeks:
            raise ValueError("Loans require the number of weeks")
        return self


class FinancingUpdate(BaseModel):
    """Manual admin edit. Not serialized with payment commits."""
    type: Optional[FinancingType] = None
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    weeks: Optional[int] = Field(default=None, ge=1)
    weekly_amount: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    weekly_interest: Optional[float] = Field(default=None, ge=0, le=100, allow_inf_nan=False)
    remaining_weeks: Optional[int] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[FinancingStatus] = None
    notes: Optional[str] = None


class FinancingProofIn(BaseModel):
    url: str = Field(..., max_length=1024)
    file_name: Optional[str] = Field(default=None, max_length=255)
    uploaded_at: Optional[datetime] = None


class FinancingResponse(BaseModel):
    id: int
    driver_id: int
    type: FinancingType
    amount: float
    weeks: Optional[int]
    weekly_amount: Optional[float]
    weekly_interest: float
    remaining_weeks: Optional[int]
    status: FinancingStatus
    start_date: datetime
    end_date: Optional[datetime]
    proof_url: Optional[str]
    proof_file_name: Optional[str]
    proof_uploaded_at: Optional[datetime]
    notes: Optional[str]
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FinancingListResponse(BaseModel):
    total: int
    financing: List[FinancingResponse]


class FinancingReconcileResponse(BaseModel):
    changed: bool
    financing: FinancingResponse


class FinancingRequestCreate(BaseModel):
    """Loan request submitted by a driver."""
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    weeks: int = Field(..., ge=1, le=104)
    reason: Optional[str] = Field(default=None, max_length=2000)


class FinancingRequestDecision(BaseModel):
    action: Literal["approve", "reject"]
    weekly_interest: float = Field(default=0, ge=0, le=100, allow_inf_nan=False)


class FinancingRequestResponse(BaseModel):
    id: int
    driver_id: int
    amount: float
    weeks: int
    reason: Optional[str]
    status: FinancingRequestStatus
    financing_id: Optional[int]
    decided_by: Optional[int]
    decided_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
