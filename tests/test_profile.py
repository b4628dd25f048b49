# tests/test_profile.py
from fastapi.testclient import TestClient

from storefront.main import app
from storefront.models import Role
from storefront.seed import ADMIN_TOKEN, EXPIRED_TOKEN, FAKE_ADMIN_TOKEN, USER_TOKEN

client = TestClient(app)


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def role_of(token):
    return client.get("/api/users/me", headers=auth(token)).json()["user"]["role"]


def test_role_predicates():
    assert not Role.USER.can_view_dashboard
    assert Role.FAKE_ADMIN.can_view_dashboard and not Role.FAKE_ADMIN.can_manage_catalog
    assert Role.ADMIN.can_view_dashboard and Role.ADMIN.can_manage_catalog
    assert Role.USER.fake_admin_toggled() is Role.FAKE_ADMIN
    assert Role.FAKE_ADMIN.fake_admin_toggled() is Role.USER
    assert Role.ADMIN.fake_admin_toggled() is None


def test_profile_redirects_anonymous_to_signin():
    r = client.get("/profile", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == "/signin"

    r = client.get("/profile", headers=auth(EXPIRED_TOKEN), follow_redirects=False)
    assert r.headers["location"] == "/signin"

    r = client.get("/profile", params={"order_id": "42"}, follow_redirects=False)
    assert r.headers["location"] == "/signin"


def test_profile_redirects_to_order():
    r = client.get("/profile", params={"order_id": "42"}, headers=auth(USER_TOKEN), follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == "/order?orderId=42"


def test_profile_view_for_user():
    r = client.get("/profile", headers=auth(USER_TOKEN))
    assert r.status_code == 200
    view = r.json()
    assert view["title"] == "Alice's profile"
    assert view["heading"] == "Alice"
    assert view["subheading"] is None
    assert view["actions"] == ["becomeFakeAdmin"]
    assert view["adminDashboardUrl"] is None
    assert view["tabs"] == ["Order History", "Topup Information"]


def test_profile_accepts_session_cookie():
    r = client.get("/profile", headers={"Cookie": f"session_token={FAKE_ADMIN_TOKEN}"})
    assert r.status_code == 200
    view = r.json()
    assert view["actions"] == ["removeFakeAdmin"]
    assert view["adminDashboardUrl"] == "/admin"


def test_admin_profile_has_no_toggle():
    view = client.get("/profile", headers=auth(ADMIN_TOKEN)).json()
    assert view["actions"] == []
    assert view["adminDashboardUrl"] == "/admin"


def test_fake_admin_toggle_round_trip():
    r = client.put("/api/users/fakeAdmin", headers=auth(USER_TOKEN))
    assert r.status_code == 200
    assert r.json()["user"]["role"] == "FAKE_ADMIN"
    assert role_of(USER_TOKEN) == "FAKE_ADMIN"

    r = client.put("/api/users/fakeAdmin", headers=auth(USER_TOKEN))
    assert r.json()["user"]["role"] == "USER"
    assert role_of(USER_TOKEN) == "USER"


def test_admin_cannot_toggle_fake_admin():
    r = client.put("/api/users/fakeAdmin", headers=auth(ADMIN_TOKEN))
    assert r.status_code == 403
    assert role_of(ADMIN_TOKEN) == "ADMIN"


def test_toggle_requires_session():
    assert client.put("/api/users/fakeAdmin").status_code == 401
    assert client.put("/api/users/fakeAdmin", headers=auth("bogus")).status_code == 401


def test_display_name_override_and_clear():
    r = client.put("/api/users/displayName", json={"displayName": "  Ally  "}, headers=auth(USER_TOKEN))
    assert r.status_code == 200
    assert r.json()["user"]["displayName"] == "Ally"

    view = client.get("/profile", headers=auth(USER_TOKEN)).json()
    assert view["heading"] == "Ally"
    assert view["subheading"] == "Alice"

    client.put("/api/users/displayName", json={"displayName": "   "}, headers=auth(USER_TOKEN))
    view = client.get("/profile", headers=auth(USER_TOKEN)).json()
    assert view["heading"] == "Alice"
    assert view["displayName"] == ""


def test_display_name_too_long():
    r = client.put("/api/users/displayName", json={"displayName": "x" * 65}, headers=auth(USER_TOKEN))
    assert r.status_code == 422


def test_long_blank_display_name_clears_override():
    client.put("/api/users/displayName", json={"displayName": "Ally"}, headers=auth(USER_TOKEN))
    r = client.put("/api/users/displayName", json={"displayName": " " * 70}, headers=auth(USER_TOKEN))
    assert r.status_code == 200
    assert r.json()["user"]["displayName"] is None

    r = client.put("/api/users/displayName", json={"displayName": "  " + "x" * 64 + "  "}, headers=auth(USER_TOKEN))
    assert r.status_code == 200
    assert r.json()["user"]["displayName"] == "x" * 64


def test_dashboard_visible_to_fake_admin_only_when_elevated():
    assert client.get("/api/admin/stats", headers=auth(USER_TOKEN)).status_code == 403
    r = client.get("/api/admin/stats", headers=auth(FAKE_ADMIN_TOKEN))
    assert r.status_code == 200
    assert r.json() == {"products": 5, "categories": 3, "users": 3, "orders": 0}

    client.put("/api/users/fakeAdmin", headers=auth(USER_TOKEN))
    assert client.get("/api/admin/stats", headers=auth(USER_TOKEN)).status_code == 200
