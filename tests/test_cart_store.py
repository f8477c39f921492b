import json
import logging
from decimal import Decimal

import pytest

from buzzer.client.cart import CART_SLOT, CartStore
from buzzer.client.storage import FileStorage, MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cart(storage):
    return CartStore(storage)


@pytest.mark.parametrize("q1,q2", [(1, 1), (2, 5), (7, 1)])
def test_adding_same_product_merges(cart, burger, q1, q2):
    cart.add_to_cart(burger, q1)
    cart.add_to_cart(burger, q2)
    assert len(cart) == 1
    assert cart.quantity_of(burger.id) == q1 + q2


def test_remove_twice_is_noop(cart, burger, fries):
    cart.add_to_cart(burger)
    cart.add_to_cart(fries)
    cart.remove_from_cart(burger.id)
    after_first = cart.lines
    cart.remove_from_cart(burger.id)
    assert cart.lines == after_first
    assert burger.id not in cart


def test_total_and_count(cart, burger, fries):
    cart.add_to_cart(burger, 2)
    cart.add_to_cart(fries, 3)
    assert cart.get_total_price() == Decimal("36.50")
    assert cart.get_item_count() == 5
    summary = cart.price_breakdown()
    assert summary.vat == Decimal("5.48")
    assert summary.total == Decimal("41.98")


@pytest.mark.parametrize("qty", [0, -1, 1.5, True])
def test_add_rejects_bad_quantity(cart, burger, qty):
    with pytest.raises(ValueError):
        cart.add_to_cart(burger, qty)
    assert cart.is_empty
    assert cart.last_added is None


def test_update_quantity(cart, burger):
    cart.add_to_cart(burger)
    cart.update_quantity(burger.id, 4)
    assert cart.quantity_of(burger.id) == 4
    cart.update_quantity(999, 3)
    assert 999 not in cart
    cart.update_quantity(burger.id, 0)
    assert cart.is_empty


def test_last_added_signal(cart, burger):
    cart.add_to_cart(burger, 2)
    assert cart.last_added.product.id == burger.id
    assert cart.last_added.quantity == 2
    cart.acknowledge_added()
    assert cart.last_added is None


def test_restaurant_from_first_line(cart, burger, fries):
    assert cart.restaurant is None
    cart.add_to_cart(fries)
    cart.add_to_cart(burger)
    assert cart.restaurant.name == "Buzzer Grill"


def test_persists_and_reloads(tmp_path, burger, fries):
    cart = CartStore(FileStorage(tmp_path, "s1"))
    cart.add_to_cart(burger, 2)
    cart.add_to_cart(fries)

    reloaded = CartStore(FileStorage(tmp_path, "s1"))
    assert reloaded.get_item_count() == 3
    assert reloaded.get_total_price() == Decimal("25.50")
    assert [line.product.id for line in reloaded.lines] == [1, 2]


def test_persisted_payload_shape(storage, cart, burger):
    cart.add_to_cart(burger, 2)
    payload = json.loads(storage.get(CART_SLOT))
    assert payload[0]["quantity"] == 2
    assert payload[0]["product"]["originalPrice"] == "12.00"


def test_clear_removes_slot(storage, cart, burger):
    cart.add_to_cart(burger)
    cart.clear_cart()
    assert cart.is_empty
    assert storage.get(CART_SLOT) is None


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        '{"product": 1}',
        '[{"product": {"id": 1}, "quantity": 1}]',
        '[{"product": {"id": 1, "price": "1.00"}, "quantity": 0}]',
    ],
)
def test_corrupt_payload_loads_empty(payload, caplog):
    storage = MemoryStorage({CART_SLOT: payload})
    with caplog.at_level(logging.WARNING, logger="buzzer.client.cart"):
        cart = CartStore(storage)
    assert cart.is_empty
    assert "corrupt cart payload" in caplog.text


def test_duplicate_persisted_lines_are_merged():
    line = {"product": {"id": 3, "price": "2.00"}, "quantity": 2}
    cart = CartStore(MemoryStorage({CART_SLOT: json.dumps([line, line])}))
    assert len(cart) == 1
    assert cart.quantity_of(3) == 4


def test_snapshot_carries_ids_and_quantities_only(cart, burger, fries):
    cart.add_to_cart(burger, 2)
    cart.add_to_cart(fries)
    request = cart.snapshot("  Gate 4  ")
    assert request.to_wire() == {
        "items": [{"productId": 1, "quantity": 2}, {"productId": 2, "quantity": 1}],
        "location": "Gate 4",
    }
