from __future__ import annotations

import base64
import hashlib
import json
import re

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..routes_metrics import (
    idempotency_conflicts_total,
    idempotency_hits_total,
    idempotency_replays_total,
)
from ..utils.responses import err

KEY_RE = re.compile(r"[A-Za-z0-9_-]{8,128}")
IDEMPOTENT_PATHS = {"/orders"}
LOCK_TTL = 30
RETRY_AFTER = "1"


class IdempotencyMiddleware(BaseHTTPMiddleware):
    """Cache responses for POSTs with an ``Idempotency-Key`` header.

    Records live in Redis for ``ttl`` seconds, scoped to the path and the
    caller's credential, so a client re-sending an order after losing the
    response gets the original answer instead of a second order. A short
    ``SET NX`` lock turns a concurrent duplicate into a 409.
    """

    def __init__(self, app, ttl: int = 86400) -> None:
        super().__init__(app)
        self.ttl = ttl

    async def dispatch(self, request: Request, call_next):
        key = request.headers.get("Idempotency-Key")
        if (
            request.method != "POST"
            or key is None
            or request.url.path.rstrip("/") not in IDEMPOTENT_PATHS
        ):
            return await call_next(request)

        idempotency_hits_total.inc()
        if not KEY_RE.fullmatch(key):
            return JSONResponse(err("Invalid Idempotency-Key header"), status_code=400)

        redis = request.app.state.redis
        scope = f"{request.headers.get('Authorization', '')}|{key}"
        key_hash = hashlib.sha256(scope.encode()).hexdigest()
        cache_key = f"idem:{request.url.path.rstrip('/')}:{key_hash}"
        lock_key = f"{cache_key}:lock"

        cached = await redis.get(cache_key)
        if cached:
            idempotency_replays_total.inc()
            return self._replay(cached)

        if not await redis.set(lock_key, "1", nx=True, ex=LOCK_TTL):
            idempotency_conflicts_total.inc()
            return JSONResponse(
                err("A request with this Idempotency-Key is already in progress"),
                status_code=409,
                headers={"Retry-After": RETRY_AFTER},
            )

        try:
            response = await call_next(request)
            body = b"".join([section async for section in response.body_iterator])
            headers = dict(response.headers)
            # Server errors are not recorded so the client may retry them.
            if response.status_code < 500:
                payload = {
                    "status": response.status_code,
                    "body": base64.b64encode(body).decode(),
                    "headers": headers,
                }
                await redis.set(cache_key, json.dumps(payload), ex=self.ttl)
            return Response(
                content=body, status_code=response.status_code, headers=headers
            )
        finally:
            await redis.delete(lock_key)

    @staticmethod
    def _replay(cached: bytes | str) -> Response:
        data = json.loads(cached)
        headers = dict(data.get("headers") or {})
        headers["Idempotent-Replayed"] = "true"
        return Response(
            content=base64.b64decode(data["body"]),
            status_code=data["status"],
            headers=headers,
        )
