"""Order status enumeration and allowed transitions."""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    """Enumerate the lifecycle states for an order."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TRANSITIONS: dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [
        OrderStatus.ACCEPTED,
        OrderStatus.READY,
        OrderStatus.CANCELLED,
    ],
    OrderStatus.ACCEPTED: [OrderStatus.READY, OrderStatus.COMPLETED],
    OrderStatus.READY: [OrderStatus.COMPLETED, OrderStatus.CANCELLED],
    OrderStatus.COMPLETED: [],
    OrderStatus.CANCELLED: [],
}

# Statuses for which the storefront offers a cancel action. The backend
# re-validates every request against ``TRANSITIONS``.
CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.READY})

# "Paid" is a cosmetic badge: cash-on-delivery orders confirmed for fulfilment.
PAID_DISPLAY = frozenset(
    {OrderStatus.ACCEPTED, OrderStatus.READY, OrderStatus.COMPLETED}
)

_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.ACCEPTED: "Accepted",
    OrderStatus.READY: "Ready",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}


def parse_status(value: OrderStatus | str | None) -> OrderStatus | None:
    """Return the :class:`OrderStatus` for ``value`` or ``None`` if unknown.

    Raw strings are matched case-insensitively, mirroring how statuses arrive
    from the wire.
    """

    if isinstance(value, OrderStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return OrderStatus(value.strip().upper())
    except ValueError:
        return None


def can_transition(src: OrderStatus | str, dst: OrderStatus | str) -> bool:
    """Return ``True`` if an order can move from ``src`` to ``dst``."""

    src_status, dst_status = parse_status(src), parse_status(dst)
    if src_status is None or dst_status is None:
        return False
    return dst_status in TRANSITIONS.get(src_status, [])


def is_terminal(status: OrderStatus | str) -> bool:
    """Return ``True`` when no further transition is possible from ``status``."""

    parsed = parse_status(status)
    return parsed is not None and not TRANSITIONS[parsed]


def can_cancel(status: OrderStatus | str | None) -> bool:
    """Return ``True`` if a cancellation may be offered for ``status``."""

    return parse_status(status) in CANCELLABLE


def is_paid_display(status: OrderStatus | str | None) -> bool:
    """Return ``True`` if the order should carry the "paid" badge."""

    return parse_status(status) in PAID_DISPLAY


def status_label(status: OrderStatus | str) -> str:
    """Return user-facing copy for ``status``.

    Unknown values are rendered as-is so that a new backend status never
    breaks a view.
    """

    parsed = parse_status(status)
    if parsed is None:
        return str(status)
    return _LABELS[parsed]
