"""SQLAlchemy-backed repository helpers for orders.

Helpers operate on ``AsyncSession`` instances and only mutate the database.
Item prices are snapshotted from the catalog at creation time so that
historical orders keep their totals when product prices change later.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain import OrderStatus
from ...pricing import to_money
from ...schemas import OrderLine
from ..models import Order, OrderItem, Product


def _merge_lines(lines: Iterable[OrderLine]) -> dict[int, int]:
    quantities: dict[int, int] = {}
    for line in lines:
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return quantities


async def create_order(
    session: AsyncSession,
    user_id: int,
    lines: Iterable[OrderLine],
    location: str | None = None,
) -> Order:
    """Create a ``PENDING`` order for ``user_id`` priced from the catalog.

    Repeated product ids are merged into one line. Raises ``ValueError`` when
    a product does not exist or the computed total is not positive; nothing
    is written in that case.
    """

    quantities = _merge_lines(lines)
    result = await session.execute(
        select(Product).where(Product.id.in_(list(quantities)))
    )
    products = {product.id: product for product in result.scalars()}
    if len(products) != len(quantities):
        raise ValueError("One or more products not found")

    items = [
        OrderItem(
            product_id=product_id,
            quantity=qty,
            price=to_money(products[product_id].price),
        )
        for product_id, qty in quantities.items()
    ]
    total = to_money(
        sum((item.price * item.quantity for item in items), Decimal("0"))
    )
    if total <= 0:
        raise ValueError("Invalid total price calculated")

    order = Order(
        user_id=user_id,
        status=OrderStatus.PENDING,
        total_price=total,
        location=location,
        items=items,
    )
    session.add(order)
    await session.commit()
    return await get_order(session, order.id)


async def get_order(session: AsyncSession, order_id: int) -> Order | None:
    """Return ``order_id`` with items, products and user loaded."""

    result = await session.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_for_user(session: AsyncSession, user_id: int) -> List[Order]:
    """Return ``user_id``'s orders, newest first."""

    result = await session.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars())


async def list_all(
    session: AsyncSession, status: OrderStatus | None = None
) -> List[Order]:
    """Return every order, optionally filtered by ``status``, newest first."""

    query = select(Order).order_by(Order.created_at.desc(), Order.id.desc())
    if status is not None:
        query = query.where(Order.status == status)
    result = await session.execute(query)
    return list(result.scalars())


async def update_status(
    session: AsyncSession, order: Order, new_status: OrderStatus
) -> Order:
    """Persist ``new_status`` on ``order``; legality is checked by the caller."""

    order.status = new_status
    await session.commit()
    return await get_order(session, order.id)


async def delete_order(session: AsyncSession, order: Order) -> None:
    await session.delete(order)
    await session.commit()
