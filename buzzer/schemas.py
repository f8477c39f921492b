"""Pydantic models describing the order API payloads.

Field names are snake_case in Python and camelCase on the wire. The same
models parse backend responses on the client and render ORM rows on the
server.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain import OrderStatus

MAX_LOCATION_LENGTH = 500


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Return a JSON-ready dict using camelCase keys."""

        return self.model_dump(mode="json", by_alias=True)


class Restaurant(_Wire):
    """Restaurant a product is picked up from."""

    id: int
    name: str
    type: str | None = None
    image_url: str | None = None
    rating: float | None = None


class Product(_Wire):
    """Catalog product as seen by the storefront."""

    id: int
    name: str = ""
    price: Decimal
    original_price: Decimal | None = None
    rate: float | None = None
    image: str | None = None
    restaurant: Restaurant | None = None

    @field_validator("original_price", mode="before")
    @classmethod
    def _blank_original_price(cls, v: Any) -> Any:
        return None if v == "" else v


class OrderLine(_Wire):
    """Single line of an outbound order request."""

    model_config = ConfigDict(frozen=True)

    product_id: int = Field(gt=0)
    quantity: int = Field(ge=1)


class OrderRequest(_Wire):
    """Snapshot of a cart submitted to ``POST /orders``.

    Prices are deliberately absent; the backend prices every line itself.
    """

    model_config = ConfigDict(frozen=True)

    items: tuple[OrderLine, ...] = Field(min_length=1)
    location: str | None = Field(default=None, max_length=MAX_LOCATION_LENGTH)

    @field_validator("location", mode="before")
    @classmethod
    def _strip_location(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class StatusUpdate(_Wire):
    """Body of ``PATCH /orders/{id}``."""

    status: OrderStatus


class UserSummary(_Wire):
    id: int
    full_name: str | None = None
    mobile_number: str | None = None


class OrderItem(_Wire):
    """Order line with the price snapshotted by the backend."""

    id: int | None = None
    product: Product
    quantity: int
    price: Decimal


class Order(_Wire):
    """Server-authoritative order record."""

    id: int
    status: str
    total_price: Decimal
    location: str | None = None
    created_at: datetime
    items: list[OrderItem] = []
    user: UserSummary | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, v: Any) -> Any:
        # Unknown statuses pass through untouched so views can render them.
        return v.value if isinstance(v, Enum) else v
