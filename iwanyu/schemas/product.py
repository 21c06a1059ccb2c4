from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .enums import ProductStatus


class ProductBase(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = Field(..., ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    stock_quantity: int = Field(0, ge=0)
    min_stock_level: int = Field(0, ge=0)
    images: list[str] = []
    tags: list[str] = []


class ProductCreate(ProductBase):
    as_draft: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    stock_quantity: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=0)
    images: Optional[list[str]] = None
    tags: Optional[list[str]] = None


class ProductOut(ProductBase):
    id: str
    vendor_id: str
    status: ProductStatus = ProductStatus.PENDING
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    shop_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class ProductStats(BaseModel):
    total: int = 0
    approved: int = 0
    pending: int = 0
    awaiting_review: int = 0
    rejected: int = 0
    draft: int = 0
    archived: int = 0
    low_stock: int = 0
