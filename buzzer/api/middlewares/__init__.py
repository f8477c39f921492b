from .idempotency import IdempotencyMiddleware
from .logging import AccessLogMiddleware

__all__ = [
    "AccessLogMiddleware",
    "IdempotencyMiddleware",
]
