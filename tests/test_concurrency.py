# tests/test_concurrency.py
import asyncio
from concurrent.futures import ThreadPoolExecutor

import httpx
from sqlalchemy import select

from storefront.database import SessionLocal
from storefront.main import app
from storefront.models import Role, User
from storefront.seed import USER_TOKEN
from storefront.services import toggle_fake_admin_logic


async def _get(ac, params):
    r = await ac.get("/api/products", params=params)
    return r.json()["length"]


async def _run_queries():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        return await asyncio.gather(
            _get(ac, {}),
            _get(ac, {"category": "electronics"}),
            _get(ac, {"from": "10", "to": "20"}),
            _get(ac, {"search": "phone"}),
            _get(ac, {"discount": "true"}),
        )


def test_concurrent_product_queries():
    assert asyncio.run(_run_queries()) == [5, 3, 2, 2, 2]


async def _toggle_twice():
    transport = httpx.ASGITransport(app=app)
    headers = {"Authorization": f"Bearer {USER_TOKEN}"}
    async with httpx.AsyncClient(transport=transport, base_url="http://test", headers=headers) as ac:
        results = await asyncio.gather(
            ac.put("/api/users/fakeAdmin"),
            ac.put("/api/users/fakeAdmin"),
        )
        me = await ac.get("/api/users/me")
        return [r.status_code for r in results], me.json()["user"]["role"]


def test_concurrent_toggles_cancel_out():
    statuses, role = asyncio.run(_toggle_twice())
    assert statuses == [200, 200]
    assert role == "USER"


def _toggle_in_own_session(email):
    with SessionLocal() as db:
        user = db.scalar(select(User).where(User.email == email))
        return toggle_fake_admin_logic(db, user)["user"]["role"]


def _role(email):
    with SessionLocal() as db:
        return db.scalar(select(User.role).where(User.email == email))


def test_threaded_toggles_are_not_lost():
    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(_toggle_in_own_session, ["alice@example.com"] * 6))
    assert _role("alice@example.com") is Role.USER

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(_toggle_in_own_session, ["alice@example.com"] * 3))
    assert _role("alice@example.com") is Role.FAKE_ADMIN


def test_toggle_uses_current_role_not_loaded_one():
    with SessionLocal() as stale, SessionLocal() as other:
        user = stale.scalar(select(User).where(User.email == "alice@example.com"))
        assert user.role is Role.USER
        toggle_fake_admin_logic(other, other.get(User, user.id))
        # the first session still holds USER in memory
        assert toggle_fake_admin_logic(stale, user)["user"]["role"] == "USER"
    assert _role("alice@example.com") is Role.USER
