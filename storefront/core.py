# storefront/core.py
import enum
from typing import Any, Dict, Iterable, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import CartItem, Category, Order, Product, Requirement, SubCategory, User

# Request bodies, JSON shapes and the order-total arithmetic.


class ProductIn(BaseModel):
    # unknown keys are kept and stored as product attributes
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    discount: float = Field(0, ge=0, le=100, allow_inf_nan=False)
    category: Optional[str] = None
    sub_category: Optional[str] = Field(None, alias="subCategory")
    img: Optional[str] = None
    description: Optional[str] = None
    stock: Optional[int] = None


# extra keys that would shadow a column, relation or serialized field
RESERVED_PRODUCT_KEYS = frozenset({
    "id", "user", "userId", "user_id", "categoryId", "category_id",
    "subCategoryId", "sub_category_id", "createdAt", "created_at", "attributes",
})


class DisplayNameIn(BaseModel):
    display_name: Optional[str] = Field(None, alias="displayName", max_length=64)

    @field_validator("display_name", mode="before")
    @classmethod
    def _strip(cls, value):
        # length is checked on the stripped value
        return value.strip() if isinstance(value, str) else value


class RequirementsIn(BaseModel):
    requirements: Dict[str, str]


class AddToCartIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(..., alias="productId")
    quantity: int = 1


class CheckoutIn(BaseModel):
    requirements: Dict[str, str] = Field(default_factory=dict)


class Include(str, enum.Enum):
    """Relations a product listing may eager-load."""

    CATEGORY = "category"
    SUB_CATEGORY = "subCategory"
    USER = "user"

    @classmethod
    def allowed(cls) -> str:
        return ", ".join(i.value for i in cls)


# ---------------------------
# Serializers
# ---------------------------
def sub_category_dict(sc: Optional[SubCategory]) -> Optional[Dict[str, Any]]:
    if sc is None:
        return None
    return {"id": sc.id, "slug": sc.slug, "name": sc.name, "logoImg": sc.logo_img}


def category_dict(c: Category, with_sub_categories: bool = True) -> Dict[str, Any]:
    out = {
        "id": c.id,
        "slug": c.slug,
        "name": c.name,
        "logoImg": c.logo_img,
        "isTopup": c.is_topup,
    }
    if with_sub_categories:
        out["subCategories"] = [sub_category_dict(sc) for sc in c.sub_categories]
    return out


def user_dict(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "displayName": u.display_name,
        "email": u.email,
        "image": u.image,
        "role": u.role.value,
    }


def product_dict(p: Product, include: Iterable[Include] = ()) -> Dict[str, Any]:
    include = set(include)
    out: Dict[str, Any] = dict(p.attributes or {})
    out.update({
        "id": p.id,
        "title": p.title,
        "price": p.price,
        "discount": p.discount,
        "img": p.img,
        "description": p.description,
        "stock": p.stock,
        "categoryId": p.category_id,
        "subCategoryId": p.sub_category_id,
        "userId": p.user_id,
        "createdAt": p.created_at.isoformat() if p.created_at else None,
    })
    if Include.CATEGORY in include:
        out["category"] = category_dict(p.category, with_sub_categories=False)
    if Include.SUB_CATEGORY in include:
        out["subCategory"] = sub_category_dict(p.sub_category)
    if Include.USER in include:
        out["user"] = user_dict(p.user) if p.user else None
    return out


def requirement_dict(r: Requirement) -> Dict[str, Any]:
    return {
        "name": r.name,
        "label": r.label,
        "placeholder": r.placeholder,
        "categories": [c.slug for c in r.categories],
    }


def cart_item_dict(ci: CartItem) -> Dict[str, Any]:
    return {
        "product": product_dict(ci.product, include={Include.CATEGORY}),
        "quantity": ci.quantity,
    }


def order_dict(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id,
        "userId": o.user_id,
        "status": o.status,
        "items": [
            {
                "productId": it.product_id,
                "title": it.title,
                "price": it.price,
                "discount": it.discount,
                "quantity": it.quantity,
            }
            for it in o.items
        ],
        "requirements": o.requirements or {},
        "subtotal": o.subtotal,
        "discount": o.discount,
        "tax": o.tax,
        "total": o.total,
        "createdAt": o.created_at.isoformat() if o.created_at else None,
    }


# ---------------------------
# Totals
# ---------------------------
def compute_totals(lines: Iterable[Tuple[float, float, int]], tax_rate: float) -> Dict[str, float]:
    """Totals for (unit price, discount percent, quantity) lines."""
    subtotal = 0.0
    discount = 0.0
    for price, pct, qty in lines:
        line = price * qty
        subtotal += line
        discount += line * (pct or 0) / 100
    tax = (subtotal - discount) * tax_rate
    return {
        "subtotal": round(subtotal, 2),
        "discount": round(discount, 2),
        "tax": round(tax, 2),
        "total": round(subtotal - discount + tax, 2),
    }


def missing_requirements(needed: Set[str], values: Dict[str, Any]) -> Set[str]:
    return {name for name in needed if not str(values.get(name) or "").strip()}
