from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from .enums import OrderStatus, PaymentStatus


class OrderItem(BaseModel):
    product_id: str
    product_name: str
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    total: Optional[float] = None


class OrderItemIn(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)


class OrderCreate(BaseModel):
    customer_name: str = Field(..., max_length=200)
    customer_email: EmailStr
    customer_phone: str
    delivery_address: str
    items: list[OrderItemIn]
    discount_amount: float = Field(0, ge=0)
    notes: Optional[str] = None


class OrderOut(BaseModel):
    id: str
    order_number: Optional[str] = None
    vendor_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: Optional[str] = None
    order_items: list[OrderItem] = []
    subtotal: float = 0
    tax_amount: float = 0
    shipping_amount: float = 0
    discount_amount: float = 0
    total_amount: float = 0
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class TrackingUpdate(BaseModel):
    tracking_number: str = Field(..., min_length=1, max_length=100)


class OrderStats(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    processing: int = 0
    shipped: int = 0
    delivered: int = 0
    cancelled: int = 0
    refunded: int = 0
    revenue: float = 0
