"""Cached order list that is only ever replaced by a fresh server read.

Nothing in this module writes a status into the cache. Operations that can
change an order (cancellation here, submission in :mod:`.checkout`) end with
:meth:`OrderBook.refresh_orders`, so views render what the backend says.
"""

from __future__ import annotations

import inspect
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Union

from ..domain import can_cancel
from ..schemas import Order
from .errors import NOT_CANCELLABLE, OrderConflict, OrderError, RequestRejected
from .http import OrdersClient
from .storage import SlotStorage

logger = logging.getLogger(__name__)

READ_SLOT = "readOrderIds"

CredentialProvider = Callable[[], Union[str, None, Awaitable[Union[str, None]]]]


class OrderBook:
    """The authenticated user's orders as last returned by ``GET /orders``."""

    def __init__(
        self,
        api: OrdersClient,
        credentials: CredentialProvider,
        storage: SlotStorage,
    ) -> None:
        self._api = api
        self._credentials = credentials
        self._storage = storage
        self._orders: list[Order] = []
        self._read_ids: set[int] = self._load_read_ids()
        # Sequence numbers keep a slow, older refresh from overwriting a newer one.
        self._issued = 0
        self._applied = 0
        self.stale = True

    async def current_credential(self) -> str | None:
        value = self._credentials()
        if inspect.isawaitable(value):
            value = await value
        return value

    # cache ---------------------------------------------------------------

    @property
    def orders(self) -> list[Order]:
        return list(self._orders)

    def get(self, order_id: int) -> Order | None:
        return next((order for order in self._orders if order.id == order_id), None)

    async def refresh_orders(self) -> list[Order]:
        """Re-fetch the order list and replace the cache wholesale.

        On failure the previous list is kept, the book is flagged stale and
        the typed error propagates.
        """

        self._issued += 1
        seq = self._issued
        try:
            orders = await self._api.list_orders(await self.current_credential())
        except OrderError:
            self.stale = True
            raise
        if seq > self._applied:
            self._orders = orders
            self._applied = seq
            self.stale = seq != self._issued
        return self.orders

    async def fetch_order(self, order_id: int) -> Order:
        """Read one order from the backend without touching the cache."""

        return await self._api.get_order(order_id, await self.current_credential())

    # unread markers ------------------------------------------------------

    def _load_read_ids(self) -> set[int]:
        raw = self._storage.get(READ_SLOT)
        if not raw:
            return set()
        try:
            return {int(v) for v in json.loads(raw)}
        except (ValueError, TypeError):
            logger.warning("discarding corrupt read marker payload")
            return set()

    def _save_read_ids(self) -> None:
        self._storage.set(READ_SLOT, json.dumps(sorted(self._read_ids)))

    @property
    def unread_count(self) -> int:
        return sum(1 for order in self._orders if order.id not in self._read_ids)

    def mark_as_read(self, order_id: int) -> None:
        if order_id in self._read_ids:
            return
        self._read_ids.add(order_id)
        self._save_read_ids()

    def mark_all_as_read(self) -> None:
        ids = {order.id for order in self._orders}
        if ids == self._read_ids:
            return
        self._read_ids = ids
        self._save_read_ids()

    # cancellation --------------------------------------------------------

    def request_cancellation(self, order_id: int) -> "CancellationRequest":
        """Start the two-step cancel flow; no request is sent yet.

        Orders whose cached status is not cancellable are refused up front.
        Orders missing from the cache are let through for the backend to judge.
        """

        order = self.get(order_id)
        if order is not None and not can_cancel(order.status):
            raise OrderConflict(
                NOT_CANCELLABLE,
                f"Order #{order_id} can no longer be cancelled ({order.status})",
            )
        return CancellationRequest(self, order_id)

    async def cancel_order(self, order_id: int) -> Order | None:
        """Ask the backend to cancel ``order_id`` and re-sync the list.

        Returns the order as found by the follow-up refresh, or ``None`` when
        that refresh failed (the book is then left stale).
        """

        try:
            await self._api.cancel_order(order_id, await self.current_credential())
        except (OrderConflict, RequestRejected):
            # Our view was out of date; pull the server's before reporting.
            await self._refresh_quietly()
            raise

        await self._refresh_quietly()
        return self.get(order_id)

    async def _refresh_quietly(self) -> None:
        try:
            await self.refresh_orders()
        except OrderError as exc:
            logger.warning("order refresh failed: %s", exc.message)


@dataclass
class CancellationRequest:
    """A pending, unconfirmed cancellation awaiting the user's answer."""

    book: OrderBook
    order_id: int
    state: str = field(default="pending")

    async def confirm(self) -> Order | None:
        if self.state != "pending":
            raise RuntimeError(f"cancellation already {self.state}")
        self.state = "confirmed"
        return await self.book.cancel_order(self.order_id)

    def dismiss(self) -> None:
        if self.state == "pending":
            self.state = "dismissed"
