from __future__ import annotations

"""Order routes: creation, listing and status changes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain import (
    OrderStatus,
    can_cancel,
    can_transition,
    is_terminal,
    parse_status,
)
from ..schemas import Order as OrderOut
from ..schemas import OrderRequest, StatusUpdate
from .auth import get_current_user, require_admin
from .db import get_session
from .models import Order, User
from .repos_sqlalchemy import orders_repo_sql
from .routes_metrics import (
    order_status_changes_total,
    order_transitions_rejected_total,
    orders_created_total,
)
from .utils.responses import ok

router = APIRouter(prefix="/orders")

logger = logging.getLogger("api")


def _dump(order: Order) -> dict:
    return OrderOut.model_validate(order).to_wire()


def _dump_many(orders: List[Order]) -> list[dict]:
    return [_dump(order) for order in orders]


async def _load(session: AsyncSession, order_id: int) -> Order:
    order = await orders_repo_sql.get_order(session, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _reject_transition(message: str) -> None:
    order_transitions_rejected_total.inc()
    raise HTTPException(status_code=409, detail=message)


@router.post("", status_code=201)
async def create_order(
    payload: OrderRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> JSONResponse:
    """Create an order priced from the catalog; client prices are ignored."""

    try:
        order = await orders_repo_sql.create_order(
            session, user.id, payload.items, payload.location
        )
    except ValueError as exc:
        await session.rollback()
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    orders_created_total.inc()
    logger.info("order %s created for user %s", order.id, user.id)
    return JSONResponse(
        ok(_dump(order), "Order created successfully"), status_code=201
    )


@router.get("")
async def my_orders(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Return the caller's orders, newest first."""

    orders = await orders_repo_sql.list_for_user(session, user.id)
    return ok(_dump_many(orders), "Orders retrieved successfully", count=len(orders))


# Declared before ``/{order_id}`` so "all" is not parsed as an id.
@router.get("/all")
async def all_orders(
    status: Optional[str] = None,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Return every order for admins, optionally filtered by ``status``."""

    wanted = None
    if status:
        wanted = parse_status(status)
        if wanted is None:
            raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    orders = await orders_repo_sql.list_all(session, wanted)
    return ok(_dump_many(orders), "Orders retrieved successfully", count=len(orders))


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    order = await _load(session, order_id)
    if order.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return ok(_dump(order), "Order retrieved successfully")


@router.patch("/{order_id}")
async def update_order_status(
    order_id: int,
    payload: StatusUpdate,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Apply a status change.

    Customers may only cancel their own orders while the current status
    allows it. Admins may apply any transition in ``TRANSITIONS``.
    """

    order = await _load(session, order_id)
    if order.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    if not user.is_admin and payload.status != OrderStatus.CANCELLED:
        raise HTTPException(
            status_code=403,
            detail=(
                "You can only cancel your own orders. "
                "Only admins can complete orders."
            ),
        )

    current = order.status
    if is_terminal(current):
        _reject_transition(f"Cannot update order with status: {current.value}")
    if not user.is_admin and not can_cancel(current):
        _reject_transition(
            f"Order can no longer be cancelled (status: {current.value})"
        )
    if not can_transition(current, payload.status):
        _reject_transition(
            f"Cannot change order status from {current.value} "
            f"to {payload.status.value}"
        )

    order = await orders_repo_sql.update_status(session, order, payload.status)
    order_status_changes_total.labels(status=payload.status.value).inc()
    logger.info(
        "order %s moved %s -> %s by user %s",
        order.id,
        current.value,
        payload.status.value,
        user.id,
    )
    return ok(_dump(order), "Order status updated successfully")


@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Delete a completed or cancelled order (admins only)."""

    order = await _load(session, order_id)
    if not is_terminal(order.status):
        raise HTTPException(
            status_code=400,
            detail="Only completed or cancelled orders can be deleted",
        )
    await orders_repo_sql.delete_order(session, order)
    return ok(message="Order deleted successfully")
