# sdk/client.py
from typing import Any, Dict, List, Optional

import httpx
import requests


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:8085", api_key: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        self.api_key = api_key
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _get(self, path: str, **kwargs):
        r = self.session.get(f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r.json()

    def _send(self, method: str, path: str, **kwargs):
        r = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        r.raise_for_status()
        return r.json()

    # Products
    def list_products(
        self,
        category: Optional[str] = None,
        price_from: Optional[float] = None,
        price_to: Optional[float] = None,
        discount_only: bool = False,
        search: Optional[str] = None,
        include: Optional[List[str]] = None,
    ):
        params: Dict[str, Any] = {}
        if category:
            params["category"] = category
        if price_from is not None:
            params["from"] = price_from
        if price_to is not None:
            params["to"] = price_to
        if discount_only:
            params["discount"] = "true"
        if search:
            params["search"] = search
        if include:
            params["include"] = ",".join(include)
        return self._get("/api/products", params=params)

    def create_product(self, title: str, price: float, category: str, sub_category: Optional[str] = None, **extra):
        payload = {"title": title, "price": price, "category": category, **extra}
        if sub_category:
            payload["subCategory"] = sub_category
        return self._send("POST", "/api/products", json=payload)

    def create_products(self, products: List[Dict[str, Any]]):
        return self._send("POST", "/api/products", json=products)

    # Cart
    def my_cart(self):
        return self._get("/api/carts/me")

    def add_to_cart(self, product_id: int, quantity: int = 1):
        return self._send("POST", "/api/carts/me", json={"productId": product_id, "quantity": quantity})

    def remove_from_cart(self, product_id: int):
        return self._send("DELETE", f"/api/carts/me/{product_id}")

    # Requirements / top-up information
    def requirements(self):
        return self._get("/api/requirements")

    def save_requirements(self, values: Dict[str, str]):
        return self._send("PUT", "/api/users/requirements", json={"requirements": values})

    # Profile
    def me(self):
        return self._get("/api/users/me")

    def profile(self, order_id: Optional[str] = None):
        params = {"order_id": order_id} if order_id else {}
        r = self.session.get(f"{self.base_url}/profile", params=params, timeout=self.timeout, allow_redirects=False)
        # redirects are part of the answer, not an error
        if r.is_redirect:
            return {"redirect": r.headers.get("location")}
        r.raise_for_status()
        return r.json()

    def toggle_fake_admin(self):
        return self._send("PUT", "/api/users/fakeAdmin")

    def set_display_name(self, display_name: str):
        return self._send("PUT", "/api/users/displayName", json={"displayName": display_name})

    # Orders
    def checkout(self, requirements: Optional[Dict[str, str]] = None):
        return self._send("POST", "/api/orders", json={"requirements": requirements or {}})

    def list_orders(self):
        return self._get("/api/orders/me")

    def get_order(self, order_id: str):
        return self._get(f"/api/orders/{order_id}")

    def dashboard_stats(self):
        return self._get("/api/admin/stats")

    # Async listing (example)
    async def list_products_async(self, **params):
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient(timeout=self.timeout, headers=headers) as client:
            r = await client.get(f"{self.base_url}/api/products", params=params)
            r.raise_for_status()
            return r.json()


if __name__ == "__main__":
    import argparse
    import os

    from rich import print

    parser = argparse.ArgumentParser(description="Storefront API client")
    parser.add_argument("--base-url", default=os.getenv("STORE_BASE_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--token", default=os.getenv("STORE_API_TOKEN"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    lp = subparsers.add_parser("list-products", help="List products")
    lp.add_argument("--category")
    lp.add_argument("--from", dest="price_from", type=float)
    lp.add_argument("--to", dest="price_to", type=float)
    lp.add_argument("--discount", action="store_true", help="Only discounted products")
    lp.add_argument("--search")
    lp.add_argument("--include", help="Comma separated: category,subCategory,user")

    cp = subparsers.add_parser("create-product", help="Create a product (admin)")
    cp.add_argument("--title", required=True)
    cp.add_argument("--price", type=float, required=True)
    cp.add_argument("--category", required=True)
    cp.add_argument("--sub-category")

    subparsers.add_parser("view-cart")
    add = subparsers.add_parser("add-to-cart")
    add.add_argument("--product-id", type=int, required=True)
    add.add_argument("--qty", type=int, default=1)

    subparsers.add_parser("profile")
    subparsers.add_parser("toggle-fake-admin")
    dn = subparsers.add_parser("display-name")
    dn.add_argument("name")

    subparsers.add_parser("checkout")
    subparsers.add_parser("list-orders")

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url, api_key=args.token)

    if args.command == "list-products":
        include = args.include.split(",") if args.include else None
        print(c.list_products(args.category, args.price_from, args.price_to, args.discount, args.search, include))
    elif args.command == "create-product":
        print(c.create_product(args.title, args.price, args.category, args.sub_category))
    elif args.command == "view-cart":
        print(c.my_cart())
    elif args.command == "add-to-cart":
        print(c.add_to_cart(args.product_id, args.qty))
    elif args.command == "profile":
        print(c.profile())
    elif args.command == "toggle-fake-admin":
        print(c.toggle_fake_admin())
    elif args.command == "display-name":
        print(c.set_display_name(args.name))
    elif args.command == "checkout":
        print(c.checkout())
    elif args.command == "list-orders":
        print(c.list_orders())
