from datetime import date

import pytest

from iwanyu.routers.dashboard import month_keys, monthly_series, top_products


@pytest.fixture
def shop(db, vendor):
    vid = vendor.vendor["id"]
    for status, stock in (("approved", 10), ("pending", 10), ("draft", 0), ("rejected", 10)):
        db.seed("products", vendor_id=vid, name=f"{status} item", price=1000, status=status,
                stock_quantity=stock, min_stock_level=2)
    items = [{"product_id": "p1", "product_name": "Kitenge Shirt", "quantity": 2, "price": 15000}]
    db.seed("orders", vendor_id=vid, customer_name="A", total_amount=30000, status="delivered",
            payment_status="paid", order_items=items)
    db.seed("orders", vendor_id=vid, customer_name="B", total_amount=8000, status="pending", payment_status="pending",
            order_items=[{"product_id": "p2", "product_name": "Sisal Bag", "quantity": 1, "price": 8000}])
    db.seed("payouts", vendor_id=vid, amount=5000, status="pending", payment_method="bank")
    return vid


def test_vendor_dashboard(client, vendor, shop):
    data = client.get("/api/dashboard/vendor", headers=vendor.headers).json()

    assert data["total_products"] == 4
    assert data["approved_products"] == 1
    assert data["pending_products"] == 3
    assert data["low_stock_products"] == 1
    assert data["total_orders"] == 2
    assert data["pending_orders"] == 1
    assert data["delivered_orders"] == 1
    assert data["total_revenue"] == 30000
    assert data["pending_payout_amount"] == 5000
    assert data["available_balance"] == 25000
    assert len(data["recent_orders"]) == 2


def test_admin_dashboard(client, admin, vendor, pending_vendor, shop):
    data = client.get("/api/dashboard/admin", headers=admin.headers).json()

    assert data["total_vendors"] == 2
    assert data["pending_vendors"] == 1
    assert data["pending_products"] == 3
    assert data["awaiting_review_products"] == 1
    assert data["total_revenue"] == 30000
    assert data["pending_payouts"] == 1


def test_dashboards_are_role_gated(client, admin, vendor):
    assert client.get("/api/dashboard/admin", headers=vendor.headers).status_code == 403
    assert client.get("/api/dashboard/vendor", headers=admin.headers).status_code == 403


def test_reports(client, admin, vendor, shop):
    report = client.get("/api/reports/vendor", params={"months": 3}, headers=vendor.headers).json()
    assert len(report["monthly_sales"]) == 3
    assert report["top_products"][0]["product_name"] == "Kitenge Shirt"

    admin_report = client.get("/api/reports/admin", headers=admin.headers).json()
    assert admin_report["revenue_by_vendor"] == [
        {"vendor_id": shop, "shop_name": "Shop vendor", "orders": 2, "revenue": 30000}
    ]


def test_month_keys_wrap_the_year():
    assert month_keys(3, date(2024, 2, 15)) == ["2023-12", "2024-01", "2024-02"]


def test_monthly_series_skips_closed_orders():
    orders = [
        {"created_at": "2024-02-03T10:00:00+00:00", "status": "delivered", "payment_status": "paid", "total_amount": 100},
        {"created_at": "2024-02-09T10:00:00+00:00", "status": "pending", "payment_status": "pending", "total_amount": 50},
        {"created_at": "2024-01-09T10:00:00+00:00", "status": "cancelled", "payment_status": "paid", "total_amount": 70},
    ]
    series = monthly_series(orders, 2, date(2024, 2, 20))
    assert series == [
        {"period": "2024-01", "orders": 0, "revenue": 0.0},
        {"period": "2024-02", "orders": 2, "revenue": 100.0},
    ]


def test_top_products_ranked_by_quantity():
    orders = [
        {"status": "delivered", "order_items": [{"product_id": "a", "product_name": "A", "quantity": 1, "price": 900}]},
        {"status": "pending", "order_items": [{"product_id": "b", "product_name": "B", "quantity": 3, "price": 10}]},
        {"status": "refunded", "order_items": [{"product_id": "a", "product_name": "A", "quantity": 9, "price": 900}]},
    ]
    assert [p["product_id"] for p in top_products(orders)] == ["b", "a"]
