import json
from datetime import datetime, timezone

import anyio
import pytest

from buzzer.client.errors import OrderConflict, TransientFailure
from buzzer.client.orders import READ_SLOT, OrderBook
from buzzer.client.storage import MemoryStorage
from buzzer.schemas import Order

pytestmark = pytest.mark.anyio


def make_order(order_id, status="PENDING"):
    return Order(
        id=order_id,
        status=status,
        total_price="10.00",
        created_at=datetime(2026, 1, order_id, tzinfo=timezone.utc),
    )


class FakeApi:
    def __init__(self, orders):
        self.server = {o.id: o for o in orders}
        self.cancel_calls = []
        self.cancel_error = None
        self.list_error = None
        self.list_gates = []

    async def list_orders(self, credential):
        if self.list_gates:
            gate, result = self.list_gates.pop(0)
            await gate.wait()
            return result
        if self.list_error is not None:
            raise self.list_error
        return sorted(self.server.values(), key=lambda o: -o.id)

    async def get_order(self, order_id, credential):
        return self.server[order_id]

    async def cancel_order(self, order_id, credential):
        self.cancel_calls.append(order_id)
        if self.cancel_error is not None:
            raise self.cancel_error
        return self.server[order_id]


@pytest.fixture
def storage():
    return MemoryStorage()


async def test_cancel_renders_server_status_not_assumed_one(storage):
    # The backend accepts the request but the next read still says READY.
    api = FakeApi([make_order(1, "READY")])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()

    request = book.request_cancellation(1)
    order = await request.confirm()

    assert api.cancel_calls == [1]
    assert order.status == "READY"
    assert book.get(1).status == "READY"
    assert request.state == "confirmed"


async def test_cancel_picks_up_refreshed_status(storage):
    api = FakeApi([make_order(1)])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()

    api.server[1] = make_order(1, "CANCELLED")
    order = await book.cancel_order(1)
    assert order.status == "CANCELLED"


async def test_rejected_cancel_resyncs_then_raises(storage):
    api = FakeApi([make_order(1)])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()

    api.server[1] = make_order(1, "ACCEPTED")
    api.cancel_error = OrderConflict("CONFLICT", "Cannot cancel")
    with pytest.raises(OrderConflict):
        await book.cancel_order(1)
    assert book.get(1).status == "ACCEPTED"


async def test_not_cancellable_is_refused_locally(storage):
    api = FakeApi([make_order(1, "COMPLETED")])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()

    with pytest.raises(OrderConflict) as excinfo:
        book.request_cancellation(1)
    assert excinfo.value.code == "NOT_CANCELLABLE"
    assert api.cancel_calls == []


async def test_confirm_only_once_and_dismiss(storage):
    api = FakeApi([make_order(1)])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()

    dismissed = book.request_cancellation(1)
    dismissed.dismiss()
    assert dismissed.state == "dismissed"
    with pytest.raises(RuntimeError):
        await dismissed.confirm()
    assert api.cancel_calls == []


async def test_refresh_failure_keeps_previous_list(storage):
    api = FakeApi([make_order(1), make_order(2)])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()
    assert not book.stale

    api.list_error = TransientFailure("NETWORK", "down")
    with pytest.raises(TransientFailure):
        await book.refresh_orders()
    assert [o.id for o in book.orders] == [2, 1]
    assert book.stale


async def test_older_refresh_never_overwrites_newer(storage):
    api = FakeApi([])
    slow, fast = anyio.Event(), anyio.Event()
    fast.set()
    api.list_gates = [(slow, [make_order(1)]), (fast, [make_order(1, "READY")])]
    book = OrderBook(api, lambda: "tok", storage)

    async with anyio.create_task_group() as tg:
        tg.start_soon(book.refresh_orders)
        await anyio.sleep(0)
        await book.refresh_orders()
        slow.set()

    assert book.get(1).status == "READY"
    assert not book.stale


async def test_async_credential_provider(storage):
    async def credential():
        return "tok"

    book = OrderBook(FakeApi([make_order(3)]), credential, storage)
    assert await book.current_credential() == "tok"
    assert (await book.fetch_order(3)).id == 3
    assert book.orders == []


async def test_unread_markers_persist(storage):
    api = FakeApi([make_order(1), make_order(2)])
    book = OrderBook(api, lambda: "tok", storage)
    await book.refresh_orders()
    assert book.unread_count == 2

    book.mark_as_read(1)
    assert book.unread_count == 1
    assert json.loads(storage.get(READ_SLOT)) == [1]

    again = OrderBook(api, lambda: "tok", storage)
    await again.refresh_orders()
    assert again.unread_count == 1
    again.mark_all_as_read()
    assert again.unread_count == 0


async def test_corrupt_read_markers_fail_open():
    storage = MemoryStorage({READ_SLOT: "{broken"})
    book = OrderBook(FakeApi([make_order(1)]), lambda: "tok", storage)
    await book.refresh_orders()
    assert book.unread_count == 1
