"""Domain models and helpers."""

from .order_status import (
    CANCELLABLE,
    PAID_DISPLAY,
    TRANSITIONS,
    OrderStatus,
    can_cancel,
    can_transition,
    is_paid_display,
    is_terminal,
    parse_status,
    status_label,
)

__all__ = [
    "CANCELLABLE",
    "PAID_DISPLAY",
    "TRANSITIONS",
    "OrderStatus",
    "can_cancel",
    "can_transition",
    "is_paid_display",
    "is_terminal",
    "parse_status",
    "status_label",
]
