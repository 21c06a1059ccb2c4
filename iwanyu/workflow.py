"""
Status workflows and money arithmetic shared by the routers.

The database remains the final authority on status columns; these tables only
describe which moves the API is willing to request.
"""
import math
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from .schemas.enums import OrderStatus, PaymentStatus, PayoutStatus, ProductStatus, VendorStatus


class InvalidTransition(Exception):
    def __init__(self, entity: str, current: str, target: str):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from {current} to {target}")


class InsufficientBalance(Exception):
    def __init__(self, requested: float, available: float):
        self.requested = requested
        self.available = available
        super().__init__(f"Requested {requested:.2f} exceeds available balance {available:.2f}")


VENDOR_TRANSITIONS = {
    VendorStatus.PENDING: {VendorStatus.APPROVED, VendorStatus.REJECTED},
    VendorStatus.REJECTED: {VendorStatus.APPROVED},
    VendorStatus.APPROVED: {VendorStatus.SUSPENDED},
    VendorStatus.SUSPENDED: {VendorStatus.APPROVED},
}

PRODUCT_TRANSITIONS = {
    ProductStatus.DRAFT: {ProductStatus.PENDING, ProductStatus.ARCHIVED},
    ProductStatus.PENDING: {ProductStatus.APPROVED, ProductStatus.REJECTED, ProductStatus.ARCHIVED},
    ProductStatus.APPROVED: {ProductStatus.PENDING, ProductStatus.REJECTED, ProductStatus.ARCHIVED},
    ProductStatus.REJECTED: {ProductStatus.PENDING, ProductStatus.APPROVED, ProductStatus.ARCHIVED},
    ProductStatus.ARCHIVED: set(),
}

ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.APPROVED, PayoutStatus.REJECTED},
    PayoutStatus.APPROVED: {PayoutStatus.PAID},
    PayoutStatus.REJECTED: set(),
    PayoutStatus.PAID: set(),
}


def _check(entity: str, table: dict, current: str, target: str) -> None:
    status_type = type(next(iter(table)))
    try:
        current_status = status_type(current)
        target_status = status_type(target)
    except ValueError as exc:
        raise InvalidTransition(entity, str(current), str(target)) from exc
    if target_status not in table[current_status]:
        raise InvalidTransition(entity, current_status.value, target_status.value)


def check_vendor_transition(current: str, target: str) -> None:
    _check("vendor", VENDOR_TRANSITIONS, current, target)


def check_product_transition(current: str, target: str) -> None:
    _check("product", PRODUCT_TRANSITIONS, current, target)


def check_payout_transition(current: str, target: str) -> None:
    _check("payout", PAYOUT_TRANSITIONS, current, target)


def check_order_transition(current: str, target: str, payment_status: Optional[str] = None) -> None:
    # Paid orders can be refunded from any state short of an existing refund.
    if target == OrderStatus.REFUNDED and payment_status == PaymentStatus.PAID and current != OrderStatus.REFUNDED:
        return
    _check("order", ORDER_TRANSITIONS, current, target)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"IWY-{now:%Y%m%d}-{uuid4().hex[:6].upper()}"


def compute_order_totals(
    items: Iterable[dict],
    tax_rate: float = 0.0,
    shipping_amount: float = 0.0,
    discount_amount: float = 0.0,
) -> dict:
    """
    Totals for a list of priced items ({"quantity", "price"}).
    The grand total never drops below zero, whatever the discount.
    """
    subtotal = round(sum(float(item["quantity"]) * float(item["price"]) for item in items), 2)
    tax_amount = round(subtotal * tax_rate, 2)
    total = subtotal + tax_amount + shipping_amount - discount_amount
    return {
        "subtotal": subtotal,
        "tax_amount": tax_amount,
        "shipping_amount": round(shipping_amount, 2),
        "discount_amount": round(discount_amount, 2),
        "total_amount": round(max(total, 0.0), 2),
    }


def compute_balance(paid_orders: Iterable[dict], payouts: Iterable[dict]) -> dict:
    """
    available = total earnings - pending payouts - completed payouts,
    where completed covers both approved and paid requests.
    """
    total_earnings = sum(float(o.get("total_amount") or 0) for o in paid_orders)
    pending = 0.0
    completed = 0.0
    for payout in payouts:
        amount = float(payout.get("amount") or 0)
        if payout.get("status") == PayoutStatus.PENDING:
            pending += amount
        elif payout.get("status") in (PayoutStatus.APPROVED, PayoutStatus.PAID):
            completed += amount
    return {
        "total_earnings": round(total_earnings, 2),
        "pending_payouts": round(pending, 2),
        "completed_payouts": round(completed, 2),
        "available_balance": round(total_earnings - pending - completed, 2),
    }


def check_payout_amount(amount: float, available: float) -> None:
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError("Amount must be greater than 0")
    if amount > available:
        raise InsufficientBalance(amount, available)
