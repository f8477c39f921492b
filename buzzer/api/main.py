"""FastAPI application serving the storefront order API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import from_url
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from .. import __version__
from .db import init_models
from .middlewares import AccessLogMiddleware, IdempotencyMiddleware
from .obs import capture_exception, configure_logging, init_sentry
from .routes_metrics import router as metrics_router
from .routes_orders import router as orders_router
from .utils.responses import err, error_parts, ok

settings = get_settings()
logger = logging.getLogger("api")

app = FastAPI(title="Buzzer API", version=__version__)
app.state.redis = from_url(settings.redis_url)

app.add_middleware(IdempotencyMiddleware, ttl=settings.idempotency_ttl)
# Added last so it wraps everything and every response carries a request id.
app.add_middleware(AccessLogMiddleware)

app.include_router(orders_router)
app.include_router(metrics_router)


@app.get("/health")
async def health() -> dict:
    return ok({"status": "ok"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message, details = error_parts(exc.detail)
    logger.warning(
        message,
        extra={
            "status": exc.status_code,
            "route": request.url.path,
            "user": getattr(request.state, "user_uid", None),
        },
    )
    return JSONResponse(
        err(message, details),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        details.append(f"{loc}: {error.get('msg')}" if loc else error.get("msg"))
    return JSONResponse(err("Validation error", details), status_code=400)


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception(
        "unhandled_error",
        extra={"status": 500, "route": request.url.path},
    )
    capture_exception(exc)
    return JSONResponse(err("Internal Server Error"), status_code=500)


@app.on_event("startup")
async def startup() -> None:
    configure_logging(settings.log_level.upper())
    init_sentry(settings.error_dsn, settings.environment)
    await init_models()
