from pydantic import BaseModel

from .order import OrderOut


class VendorDashboard(BaseModel):
    total_products: int
    approved_products: int
    pending_products: int
    low_stock_products: int
    total_orders: int
    pending_orders: int
    delivered_orders: int
    total_revenue: float
    pending_payout_amount: float
    available_balance: float
    recent_orders: list[OrderOut] = []


class AdminDashboard(BaseModel):
    total_vendors: int
    pending_vendors: int
    total_products: int
    approved_products: int
    pending_products: int
    awaiting_review_products: int
    total_orders: int
    total_revenue: float
    pending_payouts: int
    recent_orders: list[OrderOut] = []


class SeriesPoint(BaseModel):
    period: str
    orders: int
    revenue: float


class TopProduct(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    revenue: float


class VendorRevenue(BaseModel):
    vendor_id: str
    shop_name: str
    orders: int
    revenue: float


class VendorReport(BaseModel):
    monthly_sales: list[SeriesPoint] = []
    top_products: list[TopProduct] = []


class AdminReport(BaseModel):
    monthly_revenue: list[SeriesPoint] = []
    revenue_by_vendor: list[VendorRevenue] = []
    top_products: list[TopProduct] = []
