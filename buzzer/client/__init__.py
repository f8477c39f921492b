"""Storefront client core: cart, checkout and order tracking."""

from .cart import CartLine, CartStore
from .checkout import CheckoutGate
from .errors import (
    AuthenticationRequired,
    ErrorCategory,
    OrderConflict,
    OrderError,
    RequestRejected,
    TransientFailure,
    ValidationFailed,
)
from .http import OrdersClient
from .orders import CancellationRequest, OrderBook
from .session import StorefrontSession
from .storage import FileStorage, MemoryStorage

__all__ = [
    "AuthenticationRequired",
    "CancellationRequest",
    "CartLine",
    "CartStore",
    "CheckoutGate",
    "ErrorCategory",
    "FileStorage",
    "MemoryStorage",
    "OrderBook",
    "OrderConflict",
    "OrderError",
    "OrdersClient",
    "RequestRejected",
    "StorefrontSession",
    "TransientFailure",
    "ValidationFailed",
]
