"""Checkout: turn the cart into exactly one order.

The gate validates locally, submits a snapshot of the cart, and only clears
the cart once the backend has confirmed the order. A second call made while a
submission is in flight is refused rather than queued.
"""

from __future__ import annotations

import logging
import uuid

from ..schemas import MAX_LOCATION_LENGTH, Order, OrderRequest
from .cart import CartStore
from .errors import (
    EMPTY_CART,
    LOCATION_TOO_LONG,
    MISSING_LOCATION,
    SUBMISSION_IN_PROGRESS,
    UNAUTHENTICATED,
    AuthenticationRequired,
    OrderError,
    TransientFailure,
    ValidationFailed,
)
from .http import OrdersClient
from .orders import OrderBook

logger = logging.getLogger(__name__)


class CheckoutGate:
    """Submit carts as orders, one at a time."""

    def __init__(self, api: OrdersClient, book: OrderBook) -> None:
        self._api = api
        self._book = book
        self._in_flight = False
        # Key of the last attempt that failed transiently, with its payload.
        # An in-progress 409 is transient too, so the key survives it.
        self._pending_key: tuple[OrderRequest, str] | None = None

    @property
    def is_submitting(self) -> bool:
        return self._in_flight

    def _idempotency_key(self, request: OrderRequest) -> str:
        if self._pending_key is not None and self._pending_key[0] == request:
            return self._pending_key[1]
        return uuid.uuid4().hex

    async def submit_order(
        self, cart: CartStore, location: str | None, credential: str | None
    ) -> Order:
        """Place an order for the contents of ``cart``.

        Raises :class:`~buzzer.client.errors.OrderError` subclasses. On any
        failure the cart is left exactly as it was.
        """

        if self._in_flight:
            raise ValidationFailed(
                SUBMISSION_IN_PROGRESS, "Your order is already being placed"
            )
        if cart.is_empty:
            raise ValidationFailed(EMPTY_CART, "Your cart is empty")
        if not location or not location.strip():
            raise ValidationFailed(MISSING_LOCATION, "Please enter a delivery location")
        if len(location.strip()) > MAX_LOCATION_LENGTH:
            raise ValidationFailed(
                LOCATION_TOO_LONG,
                f"Delivery location must be at most {MAX_LOCATION_LENGTH} characters",
            )
        if not credential:
            raise AuthenticationRequired(
                UNAUTHENTICATED, "Please login to place an order"
            )

        self._in_flight = True
        try:
            request = cart.snapshot(location)
            key = self._idempotency_key(request)
            try:
                order = await self._api.create_order(
                    request, credential, idempotency_key=key
                )
            except TransientFailure:
                self._pending_key = (request, key)
                raise
            except OrderError:
                self._pending_key = None
                raise
            self._pending_key = None

            logger.info("order %s placed with %d lines", order.id, len(request.items))
            cart.clear_cart()
            try:
                await self._book.refresh_orders()
            except OrderError as exc:
                logger.warning("order %s placed but refresh failed: %s", order.id, exc.message)
            return order
        finally:
            self._in_flight = False
