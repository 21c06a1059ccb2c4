from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .enums import PaymentMethod, PayoutStatus
from .vendor import PaymentDetails


class PayoutRequest(BaseModel):
    amount: float = Field(..., allow_inf_nan=False, description="Amount to withdraw, in the marketplace currency")
    payment_details: PaymentDetails
    notes: Optional[str] = Field(None, max_length=1000)


class PayoutOut(BaseModel):
    id: str
    vendor_id: str
    amount: float
    status: PayoutStatus = PayoutStatus.PENDING
    payment_method: PaymentMethod
    payment_details: Optional[dict] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    paid_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    shop_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PayoutBalance(BaseModel):
    total_earnings: float = 0
    pending_payouts: float = 0
    completed_payouts: float = 0
    available_balance: float = 0
    currency: str = "RWF"


class PayoutReject(BaseModel):
    notes: str = Field(..., min_length=1, max_length=1000)


class PayoutMarkPaid(BaseModel):
    reference_number: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


class PayoutStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    paid: int = 0
    total_amount: float = 0
    pending_amount: float = 0
