import pytest

REGISTRATION = {
    "full_name": "Grace Uwase",
    "shop_name": "Uwase Fabrics",
    "shop_address": "Kimironko Market, Kigali",
    "government_id_url": "government-ids/grace.png",
    "bank_info": {"bank_name": "Bank of Kigali", "account_number": "000123", "account_holder": "Grace Uwase"},
    "mobile_money_info": {"provider": "MTN MoMo", "phone_number": "0788000000", "account_name": "Grace Uwase"},
}


@pytest.fixture
def applicant(db):
    user, token = db.auth.add_user("grace@iwanyu.rw")
    db.seed("profiles", id=user.id, email=user.email, full_name="Grace Uwase", is_active=True)
    return {"Authorization": f"Bearer {token}"}


def test_register_creates_pending_vendor(client, db, applicant):
    response = client.post("/api/vendors/register", json=REGISTRATION, headers=applicant)

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["bank_info"]["method"] == "bank"

    me = client.get("/api/auth/me", headers=applicant).json()
    assert me["role"] == "vendor"
    assert me["vendor_status"] == "pending"

    again = client.post("/api/vendors/register", json=REGISTRATION, headers=applicant)
    assert again.status_code == 400


def test_admin_cannot_register_a_shop(client, admin):
    assert client.post("/api/vendors/register", json=REGISTRATION, headers=admin.headers).status_code == 400


def test_pending_vendor_cannot_create_products(client, pending_vendor):
    response = client.post("/api/products", json={"name": "Basket", "price": 5000}, headers=pending_vendor.headers)
    assert response.status_code == 403


def test_admin_approves_pending_vendor(client, db, admin, pending_vendor):
    vendor_id = pending_vendor.vendor["id"]
    response = client.post(f"/api/vendors/{vendor_id}/approve", headers=admin.headers)

    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["approved_by"] == admin.user.id
    assert [log["action"] for log in db.rows("audit_logs")] == ["approve_vendor"]

    again = client.post(f"/api/vendors/{vendor_id}/approve", headers=admin.headers)
    assert again.status_code == 409


def test_reject_requires_reason(client, admin, pending_vendor):
    vendor_id = pending_vendor.vendor["id"]
    assert client.post(f"/api/vendors/{vendor_id}/reject", json={}, headers=admin.headers).status_code == 400

    response = client.post(f"/api/vendors/{vendor_id}/reject", json={"reason": "ID unreadable"}, headers=admin.headers)
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "ID unreadable"


def test_suspend_and_reinstate(client, admin, vendor):
    vendor_id = vendor.vendor["id"]
    assert client.post(f"/api/vendors/{vendor_id}/reinstate", headers=admin.headers).status_code == 409

    suspended = client.post(f"/api/vendors/{vendor_id}/suspend", json={"reason": "Complaints"}, headers=admin.headers)
    assert suspended.json()["status"] == "suspended"

    reinstated = client.post(f"/api/vendors/{vendor_id}/reinstate", headers=admin.headers)
    assert reinstated.json()["status"] == "approved"
    assert reinstated.json()["rejection_reason"] is None


def test_vendor_cannot_moderate(client, vendor, pending_vendor):
    response = client.post(f"/api/vendors/{pending_vendor.vendor['id']}/approve", headers=vendor.headers)
    assert response.status_code == 403


def test_list_search_and_stats(client, admin, vendor, pending_vendor):
    listing = client.get("/api/vendors", params={"status": "pending"}, headers=admin.headers).json()
    assert [v["id"] for v in listing] == [pending_vendor.vendor["id"]]

    found = client.get("/api/vendors", params={"search": "NEWSHOP"}, headers=admin.headers).json()
    assert len(found) == 1

    assert client.get("/api/vendors", params={"sort_by": "password"}, headers=admin.headers).status_code == 400

    stats = client.get("/api/vendors/stats", headers=admin.headers).json()
    assert stats == {"total": 2, "pending": 1, "approved": 1, "rejected": 0, "suspended": 0}


def test_vendor_edits_own_shop(client, vendor):
    response = client.patch("/api/vendors/me", json={"shop_name": "Vera's Corner"}, headers=vendor.headers)
    assert response.status_code == 200
    assert response.json()["shop_name"] == "Vera's Corner"
    assert response.json()["status"] == "approved"

    assert client.patch("/api/vendors/me", json={}, headers=vendor.headers).status_code == 400


def test_export_csv(client, admin, vendor):
    response = client.get("/api/vendors/export", headers=admin.headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith('"Vendor ID","Owner","Shop"')
    assert '"Shop vendor"' in lines[1]


def test_document_upload(client, db, vendor):
    logo = client.post(
        "/api/vendors/documents",
        params={"kind": "shop_logo"},
        files={"file": ("logo.png", b"png-bytes", "image/png")},
        headers=vendor.headers,
    )
    assert logo.status_code == 200
    assert logo.json()["url"].startswith("https://storage.test/vendor-documents/shop-logos/")

    gov_id = client.post(
        "/api/vendors/documents",
        params={"kind": "government_id"},
        files={"file": ("id.pdf", b"pdf-bytes", "application/pdf")},
        headers=vendor.headers,
    )
    assert "/signed/" in gov_id.json()["url"]
    assert len(db.storage.files) == 2


def test_vendor_role_without_a_shop_must_register_first(client, db):
    user, token = db.auth.add_user("noshop@iwanyu.rw")
    db.seed("profiles", id=user.id, email=user.email, role="vendor", is_active=True)
    headers = {"Authorization": f"Bearer {token}"}

    for path in ("/api/payouts/balance", "/api/products/mine", "/api/products/stats", "/api/dashboard/vendor"):
        response = client.get(path, headers=headers)
        assert response.status_code == 403, path
        assert response.json()["detail"] == "Register a shop first"

    assert client.post("/api/vendors/register", json=REGISTRATION, headers=headers).status_code == 200
    assert client.get("/api/payouts/balance", headers=headers).status_code == 200
