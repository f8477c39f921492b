"""Per-user wiring of cart, order book and checkout gate."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from config import Settings, get_settings

from ..schemas import Order
from .cart import CartStore
from .checkout import CheckoutGate
from .http import OrdersClient
from .orders import CredentialProvider, OrderBook
from .storage import FileStorage, SlotStorage


@dataclass
class StorefrontSession:
    """One cart, one order list and one checkout gate for a signed-in user."""

    cart: CartStore
    orders: OrderBook
    checkout: CheckoutGate
    api: OrdersClient
    credentials: CredentialProvider

    @classmethod
    def create(
        cls,
        credentials: CredentialProvider,
        *,
        session_id: str = "default",
        storage: SlotStorage | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "StorefrontSession":
        settings = settings or get_settings()
        storage = storage or FileStorage(settings.cart_storage_dir, session_id)
        api = OrdersClient.from_settings(settings, transport=transport)
        book = OrderBook(api, credentials, storage)
        return cls(
            cart=CartStore(storage),
            orders=book,
            checkout=CheckoutGate(api, book),
            api=api,
            credentials=credentials,
        )

    async def place_order(self, location: str | None) -> Order:
        """Submit the session cart using the session's current credential."""

        credential = await self.orders.current_credential()
        return await self.checkout.submit_order(self.cart, location, credential)

    async def close(self) -> None:
        await self.api.aclose()
