# tests/test_shell.py
import pytest
import requests

from storefront.shell import (
    AppState, LoadStatus, load_app_state, set_global_theme, show_continue_pay,
)

DIAMONDS = {
    "product": {"id": 4, "title": "86 Diamonds", "price": 1.5, "discount": 0,
                "category": {"slug": "mobile-legends"}},
    "quantity": 2,
}
GIFT_CARD = {
    "product": {"id": 5, "title": "Google Play 10", "price": 10, "discount": 10,
                "category": {"slug": "google-play"}},
    "quantity": 1,
}
REQUIREMENTS = {
    "requirements": [
        {"name": "game_user_id", "label": "Game User ID", "placeholder": None, "categories": ["mobile-legends"]},
        {"name": "zone_id", "label": "Zone ID", "placeholder": None, "categories": ["mobile-legends"]},
    ],
    "values": {"game_user_id": "123"},
}


class FakeClient:
    def __init__(self, cart=None, cart_error=None, requirements_error=None):
        self.cart = cart or []
        self.cart_error = cart_error
        self.requirements_error = requirements_error
        self.calls = []

    def my_cart(self):
        self.calls.append("cart")
        if self.cart_error:
            raise self.cart_error
        return {"cart": self.cart}

    def requirements(self):
        self.calls.append("requirements")
        if self.requirements_error:
            raise self.requirements_error
        return REQUIREMENTS


def test_load_success_computes_order_draft():
    client = FakeClient(cart=[DIAMONDS, GIFT_CARD])
    state = load_app_state(client)
    assert client.calls == ["requirements", "cart"]
    assert state.cart_load.status is LoadStatus.LOADED
    assert state.requirements_load.status is LoadStatus.LOADED
    assert state.order.subtotal == pytest.approx(13)
    assert state.order.discount == pytest.approx(1)
    assert state.order.total == pytest.approx(13.2)
    assert [r["name"] for r in state.order.category_requirements] == ["game_user_id", "zone_id"]
    assert state.order.missing_requirements == {"zone_id": "Zone ID"}


def test_cart_failure_falls_back_to_empty_cart():
    client = FakeClient(cart=[DIAMONDS], cart_error=requests.ConnectionError("down"))
    state = load_app_state(client)
    assert state.cart == []
    assert state.cart_load.status is LoadStatus.FAILED
    assert "down" in state.cart_load.error
    assert state.requirements_load.status is LoadStatus.LOADED
    assert state.order.requirements == {"game_user_id": "123"}
    assert state.order.total == 0


def test_requirements_failure_keeps_defaults():
    client = FakeClient(cart=[GIFT_CARD], requirements_error=requests.HTTPError("500"))
    state = load_app_state(client)
    assert state.cart_load.status is LoadStatus.LOADED
    assert state.requirements_load.status is LoadStatus.FAILED
    assert state.requirement_definitions == []
    assert state.order.missing_requirements == {}


def test_continue_pay_visibility():
    state = AppState()
    assert not show_continue_pay(state, "/")
    state.cart = [GIFT_CARD]
    assert show_continue_pay(state, "/")
    assert show_continue_pay(state, "/products/5")
    assert not show_continue_pay(state, "/cart")
    assert not show_continue_pay(state, "/cart?step=2")
    assert not show_continue_pay(state, "/order/")
    assert not show_continue_pay(state, "/signin")
    assert not show_continue_pay(state, "/admin/products")
    assert show_continue_pay(state, "/checkout")
    assert show_continue_pay(state, "/administrator")


def test_theme():
    state = AppState()
    assert state.global_theme == "device"
    set_global_theme(state, "dark")
    assert state.global_theme == "dark"
    with pytest.raises(ValueError):
        set_global_theme(state, "neon")
