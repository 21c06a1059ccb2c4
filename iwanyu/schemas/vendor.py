from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from .enums import VendorStatus


class BankDetails(BaseModel):
    method: Literal["bank"] = "bank"
    bank_name: str
    account_number: str
    account_holder: str


class MobileMoneyDetails(BaseModel):
    method: Literal["mobile_money"] = "mobile_money"
    provider: str = Field(..., description="e.g. MTN MoMo, Airtel Money")
    phone_number: str
    account_name: str


PaymentDetails = Annotated[Union[BankDetails, MobileMoneyDetails], Field(discriminator="method")]


class VendorBase(BaseModel):
    full_name: str = Field(..., max_length=200)
    shop_name: str = Field(..., max_length=200)
    shop_address: str
    shop_logo_url: Optional[str] = None


class VendorRegistration(VendorBase):
    government_id_url: str
    bank_info: BankDetails
    mobile_money_info: Optional[MobileMoneyDetails] = None


class VendorUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    shop_name: Optional[str] = Field(None, max_length=200)
    shop_address: Optional[str] = None
    shop_logo_url: Optional[str] = None
    bank_info: Optional[BankDetails] = None
    mobile_money_info: Optional[MobileMoneyDetails] = None


class VendorOut(VendorBase):
    id: str
    user_id: str
    government_id_url: Optional[str] = None
    bank_info: Optional[dict] = None
    mobile_money_info: Optional[dict] = None
    status: VendorStatus = VendorStatus.PENDING
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VendorDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class VendorStats(BaseModel):
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    suspended: int = 0


class DocumentUploadOut(BaseModel):
    kind: Literal["shop_logo", "government_id"]
    path: str
    url: str
