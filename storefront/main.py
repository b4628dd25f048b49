# storefront/main.py
from contextlib import asynccontextmanager
from typing import List, Optional, Union

from fastapi import Body, Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from . import config, services
from .auth import current_user, optional_user, require_admin, require_dashboard
from .core import AddToCartIn, CheckoutIn, DisplayNameIn, ProductIn, RequirementsIn, user_dict
from .database import SessionLocal, get_db, init_db
from .log import configure_logging, get_logger
from .models import User
from .profile import profile_redirect, profile_view
from .seed import seed

configure_logging()
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if config.SEED_ON_STARTUP:
        with SessionLocal() as db:
            seed(db)
    log.info("storefront_started", database=config.DATABASE_URL)
    yield


app = FastAPI(title="storefront", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------
# Product endpoints
# ---------------------------
@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    price_from: Optional[str] = Query(None, alias="from"),
    price_to: Optional[str] = Query(None, alias="to"),
    discount: Optional[str] = None,
    search: Optional[str] = None,
    include: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return services.list_products_logic(
        db, category=category, price_from=price_from, price_to=price_to,
        discount=discount, search=search, include=include,
    )


@app.post("/api/products", status_code=201)
def create_products(
    body: Union[List[ProductIn], ProductIn] = Body(...),
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return services.create_products_logic(db, user, body)


# ---------------------------
# Cart endpoints
# ---------------------------
@app.get("/api/carts/me")
def view_cart(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.get_cart_logic(db, user)


@app.post("/api/carts/me")
def cart_add(payload: AddToCartIn, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.add_to_cart_logic(db, user, payload)


@app.delete("/api/carts/me/{product_id}")
def cart_remove(product_id: int, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.remove_from_cart_logic(db, user, product_id)


# ---------------------------
# Requirements
# ---------------------------
@app.get("/api/requirements")
def list_requirements(user: Optional[User] = Depends(optional_user), db: Session = Depends(get_db)):
    return services.list_requirements_logic(db, user)


# ---------------------------
# User endpoints
# ---------------------------
@app.get("/api/users/me")
def me(user: User = Depends(current_user)):
    return {"user": user_dict(user)}


@app.put("/api/users/fakeAdmin")
def toggle_fake_admin(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.toggle_fake_admin_logic(db, user)


@app.put("/api/users/displayName")
def set_display_name(payload: DisplayNameIn, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.set_display_name_logic(db, user, payload)


@app.put("/api/users/requirements")
def save_requirements(payload: RequirementsIn, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.save_requirements_logic(db, user, payload)


# ---------------------------
# Orders
# ---------------------------
@app.post("/api/orders", status_code=201)
def checkout(
    payload: Optional[CheckoutIn] = Body(None),
    user: User = Depends(current_user),
    db: Session = Depends(get_db),
):
    return services.checkout_logic(db, user, payload or CheckoutIn())


@app.get("/api/orders/me")
def list_orders(user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.list_orders_logic(db, user)


@app.get("/api/orders/{order_id}")
def get_order(order_id: str, user: User = Depends(current_user), db: Session = Depends(get_db)):
    return services.get_order_logic(db, user, order_id)


# ---------------------------
# Admin dashboard
# ---------------------------
@app.get("/api/admin/stats")
def dashboard_stats(user: User = Depends(require_dashboard), db: Session = Depends(get_db)):
    return services.dashboard_stats_logic(db)


# ---------------------------
# Pages
# ---------------------------
@app.get("/profile")
def profile_page(order_id: Optional[str] = None, user: Optional[User] = Depends(optional_user)):
    target = profile_redirect(user, order_id)
    if target is not None:
        return RedirectResponse(target, status_code=307)
    return profile_view(user)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storefront.main:app", host="0.0.0.0", port=8085)
