"""Database models for the storefront backend.

Relationships are loaded with ``selectin`` so that rows fetched through an
``AsyncSession`` can be serialised without further lazy loads.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import declarative_base, relationship

from ..domain import OrderStatus

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Registered customer or admin, keyed by the bearer token subject."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    uid = Column(String, unique=True, nullable=False, index=True)
    full_name = Column(String, nullable=True)
    mobile_number = Column(String, nullable=True)
    type = Column(String, nullable=False, default="customer")

    @property
    def is_admin(self) -> bool:
        return self.type == "admin"


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    rating = Column(Float, nullable=True)


class Product(Base):
    """Catalog product; ``price`` is the only price an order is ever built from."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    original_price = Column(Numeric(10, 2), nullable=True)
    rate = Column(Float, nullable=True)
    image = Column(String, nullable=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=True)

    restaurant = relationship("Restaurant", lazy="selectin")


class Order(Base):
    """Order placed by a user; ``total_price`` is computed server side."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.PENDING)
    total_price = Column(Numeric(10, 2), nullable=False)
    location = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    user = relationship("User", lazy="selectin")
    items = relationship(
        "OrderItem",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    """Line items belonging to an order with the unit price snapshotted."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    product = relationship("Product", lazy="selectin")
