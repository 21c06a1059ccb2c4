import pytest

from iwanyu.roles import ADMIN, USER, VENDOR, RoleResolutionError, derive_role, resolve_role


def test_vendor_record_wins_over_admin_profile(db):
    db.seed("profiles", id="u1", email="both@iwanyu.rw", role="admin")
    db.seed("vendors", id="v1", user_id="u1", shop_name="Kigali Crafts", status="approved")

    identity = resolve_role(db, "u1")

    assert identity.role == VENDOR
    assert identity.vendor_id == "v1"
    assert identity.vendor_status == "approved"
    assert identity.email == "both@iwanyu.rw"


def test_admin_profile_without_vendor(db):
    db.seed("profiles", id="u2", role="admin")
    assert resolve_role(db, "u2").role == ADMIN


def test_unknown_identity_is_plain_user(db):
    identity = resolve_role(db, "nobody", "nobody@iwanyu.rw")
    assert identity.role == USER
    assert identity.vendor_id is None
    assert identity.is_active


def test_inactive_profile(db):
    db.seed("profiles", id="u3", role="admin", is_active=False)
    assert resolve_role(db, "u3").is_active is False


def test_lookup_failure_is_reported(db):
    db.failing_tables.add("vendors")
    with pytest.raises(RoleResolutionError):
        resolve_role(db, "u1")


@pytest.mark.parametrize(
    "vendor, profile, expected",
    [
        ({"id": "v"}, {"role": "admin"}, VENDOR),
        (None, {"role": "vendor"}, VENDOR),
        (None, {"role": "customer"}, USER),
        (None, None, USER),
    ],
)
def test_derive_role(vendor, profile, expected):
    assert derive_role(vendor, profile) == expected
