# routes_metrics.py

"""Prometheus counters for the order lifecycle and the ``/metrics`` route."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, generate_latest

from ..domain import OrderStatus

# orders
orders_created_total = Counter("orders_created_total", "Orders placed")
order_status_changes_total = Counter(
    "order_status_changes_total", "Status changes applied, by new status", ["status"]
)
order_transitions_rejected_total = Counter(
    "order_transitions_rejected_total", "Status changes refused as illegal"
)

# idempotency
idempotency_hits_total = Counter(
    "idempotency_hits_total", "POSTs that carried an Idempotency-Key"
)
idempotency_replays_total = Counter(
    "idempotency_replays_total", "Responses replayed from the idempotency cache"
)
idempotency_conflicts_total = Counter(
    "idempotency_conflicts_total", "Duplicate keys seen while the first was running"
)
idempotency_keys_live = Gauge(
    "idempotency_keys_live", "Idempotency records currently held in Redis"
)

# http
http_errors_total = Counter("http_errors_total", "Responses with status >= 400", ["status"])

# Export every series at zero so dashboards do not start with gaps.
for _counter in (
    orders_created_total,
    order_transitions_rejected_total,
    idempotency_hits_total,
    idempotency_replays_total,
    idempotency_conflicts_total,
):
    _counter.inc(0)
for _status in OrderStatus:
    order_status_changes_total.labels(status=_status.value).inc(0)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint(request: Request) -> Response:
    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        live = 0
        async for key in redis.scan_iter(match="idem:*"):
            if not key.endswith(b":lock" if isinstance(key, bytes) else ":lock"):
                live += 1
        idempotency_keys_live.set(live)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
