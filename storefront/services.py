# storefront/services.py
import math
from typing import Any, Dict, List, Optional, Set, Union

from fastapi import HTTPException
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from . import config
from .core import (
    RESERVED_PRODUCT_KEYS, AddToCartIn, CheckoutIn, DisplayNameIn, Include, ProductIn, RequirementsIn,
    cart_item_dict, compute_totals, missing_requirements, order_dict, product_dict,
    requirement_dict, user_dict,
)
from .log import get_logger
from .models import (
    CartItem, Category, Order, OrderItem, Product, Requirement, SubCategory, User,
)

# This file contains the core logic for all API endpoints.

log = get_logger(__name__)

_TOGGLE_ATTEMPTS = 10

_INCLUDE_OPTIONS = {
    Include.CATEGORY: Product.category,
    Include.SUB_CATEGORY: Product.sub_category,
    Include.USER: Product.user,
}


# ---------------------------
# Query parsing
# ---------------------------
def parse_price_bound(raw: Optional[str]) -> Optional[float]:
    """Price filter value, or None when blank, non-numeric or not finite."""
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        log.debug("price_bound_ignored", value=raw)
        return None
    if not math.isfinite(value):
        log.debug("price_bound_ignored", value=raw)
        return None
    return value


def parse_include(raw: Optional[str]) -> Set[Include]:
    if not raw:
        return set()
    out: Set[Include] = set()
    unknown: List[str] = []
    for name in raw.split(","):
        name = name.strip()
        if not name:
            continue
        try:
            out.add(Include(name))
        except ValueError:
            unknown.append(name)
    if unknown:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot include {', '.join(unknown)}. Allowed: {Include.allowed()}",
        )
    return out


# ---------------------------
# Product endpoints
# ---------------------------
def list_products_logic(
    db: Session,
    category: Optional[str] = None,
    price_from: Optional[str] = None,
    price_to: Optional[str] = None,
    discount: Optional[str] = None,
    search: Optional[str] = None,
    include: Optional[str] = None,
) -> Dict[str, Any]:
    includes = parse_include(include)

    stmt = select(Product).order_by(Product.id)
    lo = parse_price_bound(price_from)
    hi = parse_price_bound(price_to)
    if lo is not None:
        stmt = stmt.where(Product.price >= lo)
    if hi is not None:
        stmt = stmt.where(Product.price <= hi)
    if discount == "true":
        stmt = stmt.where(Product.discount > 0)
    if category:
        stmt = stmt.join(Product.category).where(Category.slug == category)
    for inc in includes:
        stmt = stmt.options(selectinload(_INCLUDE_OPTIONS[inc]))

    products = list(db.scalars(stmt).all())

    # title search runs after retrieval
    if search:
        term = search.lower()
        products = [p for p in products if term in p.title.lower()]

    out = [product_dict(p, includes) for p in products]
    return {"products": out, "length": len(out)}


def _bad_request(message: str):
    return HTTPException(status_code=400, detail=message)


def _create_product(db: Session, user: User, payload: ProductIn) -> Product:
    if payload.title is None or payload.price is None:
        raise _bad_request("Please provide title, price")
    if not payload.category:
        raise _bad_request("Please provide category")

    category = db.scalar(select(Category).where(Category.slug == payload.category))
    if category is None:
        raise _bad_request(f"Category '{payload.category}' not found")

    img = payload.img
    sub_category: Optional[SubCategory] = None

    # topup products take their image from the category metadata
    if category.is_topup:
        if category.sub_categories:
            if not payload.sub_category:
                raise _bad_request("Please provide subCategory for this product")
            sub_category = next(
                (sc for sc in category.sub_categories if sc.slug == payload.sub_category), None
            )
            if sub_category is None:
                raise _bad_request(
                    f"subCategory '{payload.sub_category}' is not part of category '{category.slug}'"
                )
            img = sub_category.logo_img
        else:
            img = category.logo_img

    if payload.sub_category and sub_category is None:
        sub_category = db.scalar(select(SubCategory).where(SubCategory.slug == payload.sub_category))
        if sub_category is None:
            raise _bad_request(f"subCategory '{payload.sub_category}' not found")

    extra = dict(payload.model_extra or {})
    reserved = sorted(RESERVED_PRODUCT_KEYS.intersection(extra))
    if reserved:
        raise _bad_request(f"Cannot set {', '.join(reserved)} on a product")

    product = Product(
        title=payload.title,
        price=payload.price,
        discount=payload.discount,
        img=img,
        description=payload.description,
        stock=payload.stock,
        attributes=extra,
        category=category,
        sub_category=sub_category,
        user=user,
    )
    db.add(product)
    db.flush()
    return product


def create_products_logic(
    db: Session, user: User, body: Union[List[ProductIn], ProductIn]
) -> Dict[str, Any]:
    if not isinstance(body, list):
        product = _create_product(db, user, body)
        db.commit()
        log.info("product_created", product_id=product.id, category=product.category.slug, user_id=user.id)
        return {"product": product_dict(product, {Include.SUB_CATEGORY})}

    if not body:
        raise _bad_request("Please provide at least one product")

    # a batch is one transaction: the first failure rolls everything back
    created: List[Product] = []
    try:
        for i, payload in enumerate(body):
            try:
                created.append(_create_product(db, user, payload))
            except HTTPException as e:
                raise HTTPException(status_code=e.status_code, detail=f"products[{i}]: {e.detail}") from e
        db.commit()
    except Exception:
        db.rollback()
        raise

    log.info("products_created", count=len(created), user_id=user.id)
    products = [product_dict(p, {Include.SUB_CATEGORY}) for p in created]
    return {"products": products, "count": len(products)}


# ---------------------------
# User endpoints
# ---------------------------
def toggle_fake_admin_logic(db: Session, user: User) -> Dict[str, Any]:
    # compare-and-set on the role; a concurrent toggle makes the update miss
    # and the flip is retried against the role it left behind
    for _ in range(_TOGGLE_ATTEMPTS):
        db.refresh(user)
        previous = user.role
        target = previous.fake_admin_toggled()
        if target is None:
            log.warning("role_toggle_rejected", user_id=user.id, role=previous.value)
            raise HTTPException(status_code=403, detail="Admins can't toggle fake admin")
        result = db.execute(
            update(User)
            .where(User.id == user.id, User.role == previous)
            .values(role=target)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if result.rowcount == 1:
            db.refresh(user)
            log.info("role_toggled", user_id=user.id, from_role=previous.value, to_role=target.value)
            return {"user": user_dict(user)}
        log.info("role_toggle_retried", user_id=user.id, expected_role=previous.value)

    raise HTTPException(status_code=409, detail="Role changed while updating, please retry")


def set_display_name_logic(db: Session, user: User, payload: DisplayNameIn) -> Dict[str, Any]:
    # blank clears the override
    user.display_name = (payload.display_name or "").strip() or None
    db.commit()
    log.info("display_name_changed", user_id=user.id, cleared=user.display_name is None)
    return {"user": user_dict(user)}


# ---------------------------
# Requirements
# ---------------------------
def _merge_requirements(db: Session, user: User, values: Dict[str, str]) -> Dict[str, Any]:
    known = set(db.scalars(select(Requirement.name)).all())
    unknown = sorted(set(values) - known)
    if unknown:
        raise _bad_request(f"Unknown requirements: {', '.join(unknown)}")
    merged = dict(user.requirements or {})
    merged.update({k: v.strip() for k, v in values.items()})
    # reassign so the JSON column is marked dirty
    user.requirements = merged
    return merged


def list_requirements_logic(db: Session, user: Optional[User]) -> Dict[str, Any]:
    reqs = db.scalars(
        select(Requirement).options(selectinload(Requirement.categories)).order_by(Requirement.id)
    ).all()
    values = dict(user.requirements or {}) if user is not None else {}
    return {"requirements": [requirement_dict(r) for r in reqs], "values": values}


def save_requirements_logic(db: Session, user: User, payload: RequirementsIn) -> Dict[str, Any]:
    merged = _merge_requirements(db, user, payload.requirements)
    db.commit()
    return {"values": merged}


# ---------------------------
# Cart endpoints
# ---------------------------
def _cart_items(db: Session, user: User) -> List[CartItem]:
    return list(db.scalars(
        select(CartItem).where(CartItem.user_id == user.id).order_by(CartItem.id)
    ).all())


def get_cart_logic(db: Session, user: User) -> Dict[str, Any]:
    return {"cart": [cart_item_dict(ci) for ci in _cart_items(db, user)]}


def add_to_cart_logic(db: Session, user: User, payload: AddToCartIn) -> Dict[str, Any]:
    if payload.quantity <= 0:
        raise _bad_request("quantity must be > 0")
    if db.get(Product, payload.product_id) is None:
        raise HTTPException(status_code=404, detail="product not found")

    item = db.scalar(select(CartItem).where(
        CartItem.user_id == user.id, CartItem.product_id == payload.product_id
    ))
    if item is None:
        db.add(CartItem(user_id=user.id, product_id=payload.product_id, quantity=payload.quantity))
    else:
        item.quantity += payload.quantity
    db.commit()
    return get_cart_logic(db, user)


def remove_from_cart_logic(db: Session, user: User, product_id: int) -> Dict[str, Any]:
    db.execute(delete(CartItem).where(CartItem.user_id == user.id, CartItem.product_id == product_id))
    db.commit()
    return get_cart_logic(db, user)


# ---------------------------
# Checkout & orders
# ---------------------------
def checkout_logic(db: Session, user: User, payload: CheckoutIn) -> Dict[str, Any]:
    items = _cart_items(db, user)
    if not items:
        raise _bad_request("cart empty")

    values = dict(user.requirements or {})
    if payload.requirements:
        values = _merge_requirements(db, user, payload.requirements)

    needed: Set[str] = set()
    for ci in items:
        needed.update(r.name for r in ci.product.category.requirements)
    missing = missing_requirements(needed, values)
    if missing:
        raise HTTPException(
            status_code=400,
            detail={"message": "Please provide the required information", "missing": sorted(missing)},
        )

    for ci in items:
        stock = ci.product.stock
        if stock is not None and stock < ci.quantity:
            raise HTTPException(status_code=409, detail=f"insufficient_stock:{ci.product_id}")

    totals = compute_totals(
        ((ci.product.price, ci.product.discount, ci.quantity) for ci in items), config.TAX_RATE
    )
    order = Order(
        user_id=user.id,
        requirements={name: values[name] for name in sorted(needed)},
        **totals,
    )
    order.items = [
        OrderItem(
            product_id=ci.product_id,
            title=ci.product.title,
            price=ci.product.price,
            discount=ci.product.discount,
            quantity=ci.quantity,
        )
        for ci in items
    ]
    db.add(order)
    for ci in items:
        if ci.product.stock is not None:
            ci.product.stock -= ci.quantity
        db.delete(ci)
    db.commit()

    log.info("order_placed", order_id=order.id, user_id=user.id, total=order.total)
    return {"order": order_dict(order)}


def list_orders_logic(db: Session, user: User) -> Dict[str, Any]:
    orders = db.scalars(
        select(Order)
        .where(Order.user_id == user.id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    ).all()
    return {"orders": [order_dict(o) for o in orders]}


def get_order_logic(db: Session, user: User, order_id: str) -> Dict[str, Any]:
    order = db.get(Order, order_id)
    if order is None or (order.user_id != user.id and not user.role.can_view_dashboard):
        raise HTTPException(status_code=404, detail="order not found")
    return {"order": order_dict(order)}


# ---------------------------
# Admin dashboard
# ---------------------------
def dashboard_stats_logic(db: Session) -> Dict[str, int]:
    def count(model) -> int:
        return db.scalar(select(func.count()).select_from(model)) or 0

    return {
        "products": count(Product),
        "categories": count(Category),
        "users": count(User),
        "orders": count(Order),
    }
