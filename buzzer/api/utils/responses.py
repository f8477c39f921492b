from typing import Any, Dict, List

from ..obs.logging import request_id_ctx


def ok(data: Any = None, message: str = "OK", **extra: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def err(message: str, details: List[str] | None = None) -> Dict[str, Any]:
    """Return an error envelope."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_ctx.get(None)
    return body


def error_parts(detail: Any) -> tuple[str, List[str] | None]:
    """Split an ``HTTPException.detail`` into message and details.

    Routes raise either a plain string or ``{"message": ..., "details": [...]}``.
    """
    if isinstance(detail, dict):
        return str(detail.get("message", "Error")), detail.get("details")
    return str(detail), None
