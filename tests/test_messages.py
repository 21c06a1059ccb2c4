def _send(client, headers, **payload):
    return client.post("/api/messages", json=payload, headers=headers)


def test_vendor_writes_to_first_admin_by_default(client, admin, vendor):
    response = _send(client, vendor.headers, message="When will my shop be approved?")

    assert response.status_code == 200
    message = response.json()
    assert message["receiver_id"] == admin.user.id
    assert message["sender_type"] == "vendor"
    assert message["vendor_id"] == vendor.vendor["id"]


def test_vendor_without_admins_available(client, vendor):
    assert _send(client, vendor.headers, message="hello").status_code == 404


def test_vendors_cannot_message_other_vendors(client, admin, vendor, make_vendor):
    other = make_vendor("other@iwanyu.rw")
    response = _send(client, vendor.headers, message="hi", receiver_id=other.user.id)
    assert response.status_code == 400


def test_admin_reply_requires_vendor_receiver(client, admin, vendor):
    assert _send(client, admin.headers, message="hi").status_code == 400
    assert _send(client, admin.headers, message="hi", receiver_id="ghost").status_code == 404

    reply = _send(client, admin.headers, message="Approved today", receiver_id=vendor.user.id)
    assert reply.json()["receiver_type"] == "vendor"


def test_inbox_and_read_flags(client, admin, vendor):
    _send(client, admin.headers, message="First", receiver_id=vendor.user.id)
    second = _send(client, admin.headers, message="Second", receiver_id=vendor.user.id).json()

    inbox = client.get("/api/messages", headers=vendor.headers).json()
    assert [m["message"] for m in inbox] == ["Second", "First"]
    assert client.get("/api/messages/unread-count", headers=vendor.headers).json() == {"unread": 2, "announcements": 0}

    assert client.post(f"/api/messages/{second['id']}/read", headers=admin.headers).status_code == 403
    assert client.post(f"/api/messages/{second['id']}/read", headers=vendor.headers).json()["is_read"] is True

    unread = client.get("/api/messages", params={"unread_only": True}, headers=vendor.headers).json()
    assert [m["message"] for m in unread] == ["First"]

    assert client.post("/api/messages/read-all", headers=vendor.headers).json() == {"updated": 1}
    assert client.get("/api/messages/unread-count", headers=vendor.headers).json()["unread"] == 0


def test_sent_box_and_search(client, admin, vendor):
    _send(client, vendor.headers, message="Payout question")
    _send(client, vendor.headers, message="Stock question")

    sent = client.get("/api/messages", params={"box": "sent", "search": "payout"}, headers=vendor.headers).json()
    assert [m["message"] for m in sent] == ["Payout question"]


def test_announcement_reaches_every_active_vendor(client, db, admin, vendor, pending_vendor, make_vendor):
    make_vendor("rejected@iwanyu.rw", status="rejected")

    response = client.post("/api/messages/announcements", json={"message": "Holiday hours"}, headers=admin.headers)

    assert response.json() == {"recipients": 2}
    counts = client.get("/api/messages/unread-count", headers=pending_vendor.headers).json()
    assert counts == {"unread": 1, "announcements": 1}
    only = client.get("/api/messages", params={"announcements_only": True}, headers=vendor.headers).json()
    assert only[0]["is_announcement"] is True


def test_delete_own_message_only(client, admin, vendor, make_vendor):
    message = _send(client, admin.headers, message="hi", receiver_id=vendor.user.id).json()
    question = _send(client, vendor.headers, message="When do payouts run?").json()

    assert client.delete(f"/api/messages/{question['id']}", headers=admin.headers).status_code == 403
    assert client.delete(f"/api/messages/{question['id']}", headers=vendor.headers).status_code == 200

    assert client.delete(f"/api/messages/{message['id']}", headers=vendor.headers).status_code == 403
    assert client.delete(f"/api/messages/{message['id']}", headers=admin.headers).status_code == 200
    assert client.delete(f"/api/messages/{message['id']}", headers=admin.headers).status_code == 404
