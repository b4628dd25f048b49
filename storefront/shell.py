# storefront/shell.py
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from . import config
from .core import compute_totals
from .log import get_logger

# Client-side application state. Built once at startup from two API calls
# and handed to whatever renders the store.

log = get_logger(__name__)

THEMES = ("light", "dark", "device")
# first path segments where the floating pay button is hidden
PAY_PAGES = ("/cart", "/signin", "/order", "/admin")


class LoadStatus(str, enum.Enum):
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class LoadState:
    status: LoadStatus = LoadStatus.PENDING
    error: Optional[str] = None


@dataclass
class OrderDraft:
    user: Dict[str, Any] = field(default_factory=dict)
    requirements: Dict[str, Any] = field(default_factory=dict)
    category_requirements: List[Dict[str, Any]] = field(default_factory=list)
    missing_requirements: Dict[str, str] = field(default_factory=dict)
    subtotal: float = 0
    tax: float = 0
    discount: float = 0
    total: float = 0


@dataclass
class AppState:
    global_theme: str = "device"
    cart: List[Dict[str, Any]] = field(default_factory=list)
    order: OrderDraft = field(default_factory=OrderDraft)
    requirement_definitions: List[Dict[str, Any]] = field(default_factory=list)
    cart_load: LoadState = field(default_factory=LoadState)
    requirements_load: LoadState = field(default_factory=LoadState)


def set_global_theme(state: AppState, theme: str) -> AppState:
    if theme not in THEMES:
        raise ValueError(f"unknown theme {theme!r}, expected one of {', '.join(THEMES)}")
    state.global_theme = theme
    return state


def refresh_order(state: AppState, tax_rate: float = config.TAX_RATE) -> AppState:
    """Recompute totals and the top-up information the cart still needs."""
    lines = [
        (it["product"]["price"], it["product"].get("discount") or 0, it["quantity"])
        for it in state.cart
    ]
    totals = compute_totals(lines, tax_rate)
    order = state.order
    order.subtotal = totals["subtotal"]
    order.discount = totals["discount"]
    order.tax = totals["tax"]
    order.total = totals["total"]

    cart_slugs = {
        (it["product"].get("category") or {}).get("slug") for it in state.cart
    }
    order.category_requirements = [
        r for r in state.requirement_definitions if cart_slugs.intersection(r.get("categories", []))
    ]
    order.missing_requirements = {
        r["name"]: r["label"]
        for r in order.category_requirements
        if not str(order.requirements.get(r["name"]) or "").strip()
    }
    return state


def load_app_state(client, state: Optional[AppState] = None) -> AppState:
    """Fill the state from the API: requirements first, then the cart.

    A failed call leaves that resource at its default and marks it FAILED;
    the other call still runs.
    """
    state = state or AppState()

    try:
        body = client.requirements()
        state.requirement_definitions = body.get("requirements", [])
        state.order.requirements = body.get("values", {})
        state.requirements_load = LoadState(LoadStatus.LOADED)
    except requests.RequestException as e:
        log.warning("app_state_load_failed", resource="requirements", error=str(e))
        state.requirements_load = LoadState(LoadStatus.FAILED, str(e))

    try:
        state.cart = client.my_cart().get("cart", [])
        state.cart_load = LoadState(LoadStatus.LOADED)
    except requests.RequestException as e:
        log.warning("app_state_load_failed", resource="cart", error=str(e))
        state.cart = []
        state.cart_load = LoadState(LoadStatus.FAILED, str(e))

    return refresh_order(state)


def show_continue_pay(state: AppState, path: str) -> bool:
    """Whether the floating "continue to pay" button belongs on `path`."""
    if not state.cart:
        return False
    path = path.split("?", 1)[0].rstrip("/") or "/"
    return not any(path == p or path.startswith(p + "/") for p in PAY_PAGES)
