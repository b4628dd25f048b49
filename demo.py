#!/usr/bin/env python
import requests

from sdk.client import StoreClient
from storefront.seed import ADMIN_TOKEN, USER_TOKEN

# Walks through the API against a server started with STORE_SEED=1.


def main():
    base_url = "http://127.0.0.1:8085"
    admin = StoreClient(base_url=base_url, api_key=ADMIN_TOKEN)
    alice = StoreClient(base_url=base_url, api_key=USER_TOKEN)

    # -----------------------------
    # Create products
    # -----------------------------
    print("Creating products...")
    print(admin.create_products([
        {"title": "Mouse", "price": 20, "category": "electronics", "img": "mouse.png"},
        {"title": "172 Diamonds", "price": 3, "category": "mobile-legends", "subCategory": "ml-diamonds"},
    ]))
    try:
        admin.create_product("Orphan Diamonds", 3, "mobile-legends")
    except requests.HTTPError as e:
        print("Rejected as expected:", e.response.json()["detail"])

    # -----------------------------
    # Browse
    # -----------------------------
    print("\nProducts between 10 and 20...")
    print(alice.list_products(price_from=10, price_to=20))
    print("\nSearching for 'phone'...")
    print(alice.list_products(search="phone", include=["category"]))

    # -----------------------------
    # Cart and checkout
    # -----------------------------
    diamonds = alice.list_products(search="172 Diamonds")["products"][0]
    alice.add_to_cart(diamonds["id"], 2)
    print("\nCart:", alice.my_cart())
    print("\nCheckout:", alice.checkout({"game_user_id": "123456", "zone_id": "2001"}))
    print("\nOrder history:", alice.list_orders())

    # -----------------------------
    # Profile
    # -----------------------------
    print("\nBecoming a fake admin...")
    print(alice.toggle_fake_admin())
    print("Dashboard:", alice.dashboard_stats())
    print(alice.toggle_fake_admin())
    alice.set_display_name("Ally")
    print("\nProfile:", alice.profile())
    print("Profile with order id:", alice.profile(order_id="42"))


if __name__ == "__main__":
    main()
