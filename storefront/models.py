# storefront/models.py
import enum
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _order_id() -> str:
    return uuid.uuid4().hex


class Role(str, enum.Enum):
    USER = "USER"
    FAKE_ADMIN = "FAKE_ADMIN"
    ADMIN = "ADMIN"

    @property
    def can_view_dashboard(self) -> bool:
        return self in (Role.FAKE_ADMIN, Role.ADMIN)

    @property
    def can_manage_catalog(self) -> bool:
        return self is Role.ADMIN

    def fake_admin_toggled(self) -> Optional["Role"]:
        """Role after the self-service toggle, or None when the role can't toggle."""
        if self is Role.USER:
            return Role.FAKE_ADMIN
        if self is Role.FAKE_ADMIN:
            return Role.USER
        return None


category_requirements = Table(
    "category_requirements",
    Base.metadata,
    Column("category_id", ForeignKey("categories.id"), primary_key=True),
    Column("requirement_id", ForeignKey("requirements.id"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    logo_img: Mapped[Optional[str]] = mapped_column(String(255))
    is_topup: Mapped[bool] = mapped_column(Boolean, default=False)

    sub_categories: Mapped[List["SubCategory"]] = relationship(
        back_populates="category", order_by="SubCategory.position"
    )
    requirements: Mapped[List["Requirement"]] = relationship(
        secondary=category_requirements, back_populates="categories"
    )
    products: Mapped[List["Product"]] = relationship(back_populates="category")

    def __repr__(self):
        return f"<Category(slug='{self.slug}', is_topup={self.is_topup})>"


class SubCategory(Base):
    __tablename__ = "sub_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(120))
    logo_img: Mapped[Optional[str]] = mapped_column(String(255))
    position: Mapped[int] = mapped_column(Integer, default=0)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"))

    category: Mapped[Category] = relationship(back_populates="sub_categories")


class Requirement(Base):
    """A field a buyer fills in to receive top-up goods (e.g. a game account id)."""

    __tablename__ = "requirements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(80), unique=True)
    label: Mapped[str] = mapped_column(String(120))
    placeholder: Mapped[Optional[str]] = mapped_column(String(120))

    categories: Mapped[List[Category]] = relationship(
        secondary=category_requirements, back_populates="requirements"
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    display_name: Mapped[Optional[str]] = mapped_column(String(64))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    image: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[Role] = mapped_column(SAEnum(Role, name="role"), default=Role.USER)
    # saved top-up information, requirement name -> value
    requirements: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)

    sessions: Mapped[List["UserSession"]] = relationship(back_populates="user")
    cart_items: Mapped[List["CartItem"]] = relationship(
        back_populates="user", order_by="CartItem.id"
    )
    orders: Mapped[List["Order"]] = relationship(back_populates="user")

    def __repr__(self):
        return f"<User(email='{self.email}', role={self.role.value})>"


class UserSession(Base):
    __tablename__ = "sessions"

    token: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    user: Mapped[User] = relationship(back_populates="sessions")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), index=True)
    price: Mapped[float] = mapped_column(Float)
    discount: Mapped[float] = mapped_column(Float, default=0)
    img: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    stock: Mapped[Optional[int]] = mapped_column(Integer)
    # pass-through fields without a dedicated column
    attributes: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"))
    sub_category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("sub_categories.id"))
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    category: Mapped[Category] = relationship(back_populates="products")
    sub_category: Mapped[Optional[SubCategory]] = relationship()
    user: Mapped[Optional[User]] = relationship()

    def __repr__(self):
        return f"<Product(title='{self.title}', price={self.price})>"


class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"))
    quantity: Mapped[int] = mapped_column(Integer, default=1)

    user: Mapped[User] = relationship(back_populates="cart_items")
    product: Mapped[Product] = relationship()


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_order_id)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    status: Mapped[str] = mapped_column(String(20), default="placed")
    subtotal: Mapped[float] = mapped_column(Float, default=0)
    discount: Mapped[float] = mapped_column(Float, default=0)
    tax: Mapped[float] = mapped_column(Float, default=0)
    total: Mapped[float] = mapped_column(Float, default=0)
    requirements: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    user: Mapped[User] = relationship(back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        back_populates="order", order_by="OrderItem.id", cascade="all, delete-orphan"
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[str] = mapped_column(ForeignKey("orders.id"))
    product_id: Mapped[Optional[int]] = mapped_column(ForeignKey("products.id"))
    title: Mapped[str] = mapped_column(String(200))
    price: Mapped[float] = mapped_column(Float)
    discount: Mapped[float] = mapped_column(Float, default=0)
    quantity: Mapped[int] = mapped_column(Integer)

    order: Mapped[Order] = relationship(back_populates="items")
