"""Client-side cart persisted to a storage slot.

The cart is a single-session object: create one :class:`CartStore` per user
session and hand it to whatever needs it. All mutations go through its
methods, each of which writes the slot before the in-memory lines change.
"""

from __future__ import annotations

import logging
import threading
from decimal import Decimal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..pricing import PriceBreakdown, cart_subtotal, price_breakdown
from ..schemas import OrderLine, OrderRequest, Product, Restaurant
from .storage import SlotStorage

logger = logging.getLogger(__name__)

CART_SLOT = "cart"


class CartLine(BaseModel):
    """A product together with the quantity selected."""

    product: Product
    quantity: int = Field(ge=1)


_LINES = TypeAdapter(list[CartLine])


class CartStore:
    """Mapping of product id to :class:`CartLine`, kept in insertion order."""

    def __init__(self, storage: SlotStorage, slot: str = CART_SLOT) -> None:
        self._storage = storage
        self._slot = slot
        self._lock = threading.RLock()
        self._lines: dict[int, CartLine] = self._load()
        self.last_added: CartLine | None = None

    # persistence ---------------------------------------------------------

    def _load(self) -> dict[int, CartLine]:
        raw = self._storage.get(self._slot)
        if not raw:
            return {}
        try:
            lines = _LINES.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "discarding corrupt cart payload (%d errors)", exc.error_count()
            )
            return {}

        merged: dict[int, CartLine] = {}
        for line in lines:
            existing = merged.get(line.product.id)
            if existing is None:
                merged[line.product.id] = line
            else:
                existing.quantity += line.quantity
        return merged

    def _commit(self, lines: dict[int, CartLine]) -> None:
        if lines:
            payload = _LINES.dump_json(list(lines.values()), by_alias=True)
            self._storage.set(self._slot, payload.decode())
        else:
            self._storage.remove(self._slot)
        self._lines = lines

    # mutations -----------------------------------------------------------

    def add_to_cart(self, product: Product, quantity: int = 1) -> CartLine:
        """Add ``quantity`` of ``product``, merging into an existing line.

        Raises ``ValueError`` when ``quantity`` is below 1; the cart is left
        unchanged in that case.
        """

        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        with self._lock:
            existing = self._lines.get(product.id)
            if existing is None:
                line = CartLine(product=product, quantity=quantity)
            else:
                line = CartLine(
                    product=existing.product, quantity=existing.quantity + quantity
                )
            self._commit({**self._lines, product.id: line})
            self.last_added = line.model_copy()
            logger.debug("cart add product=%s qty=%s", product.id, line.quantity)
            return line.model_copy()

    def remove_from_cart(self, product_id: int) -> None:
        """Drop the line for ``product_id``; absent ids are ignored."""

        with self._lock:
            if product_id not in self._lines:
                return
            lines = {pid: line for pid, line in self._lines.items() if pid != product_id}
            self._commit(lines)

    def update_quantity(self, product_id: int, quantity: int) -> None:
        """Set the absolute quantity for ``product_id``.

        A quantity of zero or less removes the line. Unknown ids are ignored.
        """

        if quantity <= 0:
            self.remove_from_cart(product_id)
            return

        with self._lock:
            existing = self._lines.get(product_id)
            if existing is None:
                return
            line = CartLine(product=existing.product, quantity=quantity)
            self._commit({**self._lines, product_id: line})

    def clear_cart(self) -> None:
        """Empty the cart and delete its persisted slot."""

        with self._lock:
            self._commit({})
            self.last_added = None

    def acknowledge_added(self) -> None:
        """Reset the "just added" signal once the UI has shown it."""

        self.last_added = None

    # derived values ------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        with self._lock:
            return [line.model_copy() for line in self._lines.values()]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._lines

    def quantity_of(self, product_id: int) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    @property
    def restaurant(self) -> Restaurant | None:
        """Restaurant of the first line, used as the pickup location.

        Carts are assumed to hold products from one restaurant; nothing here
        enforces it.
        """

        with self._lock:
            first = next(iter(self._lines.values()), None)
        return first.product.restaurant if first else None

    def get_total_price(self) -> Decimal:
        with self._lock:
            return cart_subtotal(self._lines.values())

    def get_item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self._lines.values())

    def price_breakdown(self) -> PriceBreakdown:
        with self._lock:
            return price_breakdown(self._lines.values())

    def snapshot(self, location: str | None) -> OrderRequest:
        """Freeze the current lines into an :class:`OrderRequest`."""

        with self._lock:
            items = tuple(
                OrderLine(product_id=pid, quantity=line.quantity)
                for pid, line in self._lines.items()
            )
        return OrderRequest(items=items, location=location)
