"""Async REST client for the order endpoints.

Transport failures and error envelopes are translated into the typed errors
of :mod:`buzzer.client.errors`; nothing is retried automatically.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from config import get_settings

from ..domain import OrderStatus
from ..schemas import Order, OrderRequest, StatusUpdate
from .errors import (
    BAD_RESPONSE,
    GENERIC_MESSAGE,
    NETWORK,
    NETWORK_MESSAGE,
    TIMEOUT,
    TIMEOUT_MESSAGE,
    UNAUTHENTICATED,
    AuthenticationRequired,
    RequestRejected,
    TransientFailure,
    error_for_status,
)

logger = logging.getLogger(__name__)


def _json_body(resp: httpx.Response) -> dict[str, Any] | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


class OrdersClient:
    """Thin wrapper around ``httpx.AsyncClient`` for ``/orders``."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings=None, **kwargs: Any) -> "OrdersClient":
        settings = settings or get_settings()
        return cls(settings.api_base_url, timeout=settings.request_timeout, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "OrdersClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        credential: str | None,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        if not credential:
            raise AuthenticationRequired(UNAUTHENTICATED, "Please login to continue")

        request_headers = {"Authorization": f"Bearer {credential}", **(headers or {})}
        try:
            resp = await self._client.request(
                method, path, json=json, headers=request_headers
            )
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out", method, path)
            raise TransientFailure(TIMEOUT, TIMEOUT_MESSAGE) from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise TransientFailure(NETWORK, NETWORK_MESSAGE) from exc

        body = _json_body(resp)
        if resp.is_error:
            message = body.get("message") if body else None
            details = body.get("details") if body else None
            if not isinstance(details, list):
                details = None
            logger.info("%s %s -> %s %s", method, path, resp.status_code, message)
            raise error_for_status(
                resp.status_code,
                message,
                details,
                retry_after=resp.headers.get("Retry-After"),
            )
        if body is None:
            raise TransientFailure(BAD_RESPONSE, GENERIC_MESSAGE, status_code=resp.status_code)
        if body.get("success") is False:
            raise RequestRejected(
                "REJECTED",
                body.get("message") or GENERIC_MESSAGE,
                status_code=resp.status_code,
            )
        return body

    @staticmethod
    def _order(data: Any) -> Order:
        try:
            return Order.model_validate(data)
        except ValidationError as exc:
            raise TransientFailure(BAD_RESPONSE, GENERIC_MESSAGE) from exc

    async def create_order(
        self,
        request: OrderRequest,
        credential: str | None,
        *,
        idempotency_key: str | None = None,
    ) -> Order:
        """``POST /orders``; returns the order as priced by the backend."""

        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        body = await self._request(
            "POST", "/orders", credential, json=request.to_wire(), headers=headers
        )
        return self._order(body.get("data"))

    async def list_orders(self, credential: str | None) -> list[Order]:
        """``GET /orders`` for the authenticated user, newest first."""

        body = await self._request("GET", "/orders", credential)
        data = body.get("data")
        if data is None:
            return []
        if not isinstance(data, list):
            data = [data]
        return [self._order(item) for item in data]

    async def get_order(self, order_id: int, credential: str | None) -> Order:
        body = await self._request("GET", f"/orders/{order_id}", credential)
        return self._order(body.get("data"))

    async def update_status(
        self, order_id: int, status: OrderStatus, credential: str | None
    ) -> Order:
        """``PATCH /orders/{id}``; the backend decides whether it is legal."""

        payload = StatusUpdate(status=status).to_wire()
        body = await self._request(
            "PATCH", f"/orders/{order_id}", credential, json=payload
        )
        return self._order(body.get("data"))

    async def cancel_order(self, order_id: int, credential: str | None) -> Order:
        return await self.update_status(order_id, OrderStatus.CANCELLED, credential)
