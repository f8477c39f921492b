import json
import logging
import os
import random
import time
import uuid
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..obs import capture_exception
from ..obs.logging import request_id_ctx
from ..routes_metrics import http_errors_total
from ..utils.responses import err

LOG_SAMPLE_2XX = float(os.getenv("LOG_SAMPLE_2XX", "0.1"))

# Query parameters never written to access logs
PII_KEYS = {"location", "mobile", "mobilenumber", "phone", "email", "token"}

logger = logging.getLogger("api")


def _ts() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Assign a request id, emit structured access logs and count errors.

    Successful responses are sampled with ``LOG_SAMPLE_2XX``; every 4xx/5xx is
    logged. Exceptions escaping the route become a 500 envelope carrying an
    ``error_id`` that also appears in the log line.
    """

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        start = time.perf_counter()
        try:
            error_id = None
            try:
                response = await call_next(request)
            except Exception as exc:
                error_id = str(uuid.uuid4())
                logger.exception(json.dumps({"req_id": req_id, "error_id": error_id}))
                capture_exception(exc)
                payload = err("Internal Server Error")
                payload["error_id"] = error_id
                response = JSONResponse(payload, status_code=500)

            status = response.status_code
            if status >= 400:
                http_errors_total.labels(status=str(status)).inc()

            if status >= 400 or random.random() < LOG_SAMPLE_2XX:
                query = {
                    k: ("***" if k.lower() in PII_KEYS else v)
                    for k, v in request.query_params.items()
                }
                outbound = {
                    "ts": _ts(),
                    "level": "ERROR" if status >= 500 else "INFO",
                    "req_id": req_id,
                    "user": getattr(request.state, "user_uid", None),
                    "method": request.method,
                    "route": request.url.path,
                    "status": status,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                }
                if query:
                    outbound["query"] = query
                if error_id:
                    outbound["error_id"] = error_id
                log_fn = logger.error if status >= 500 else logger.info
                log_fn(json.dumps(outbound))

            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_ctx.reset(token)
