"""Sentry wiring for unhandled API errors."""

from __future__ import annotations

import logging

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger("obs")


def init_sentry(dsn: str | None, environment: str | None = None) -> bool:
    """Start the Sentry client when ``dsn`` is set; return whether it started."""

    if not dsn:
        logger.info("error_dsn not set; unhandled errors are only logged")
        return False
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        send_default_pii=False,
        # Breadcrumbs only; errors are sent explicitly by ``capture_exception``.
        integrations=[LoggingIntegration(event_level=None)],
    )
    return True


def capture_exception(exc: BaseException) -> str | None:
    """Report ``exc`` to Sentry and return the event id, or log it locally."""

    if sentry_sdk.get_client().is_active():
        return sentry_sdk.capture_exception(exc)
    logger.error("unhandled %s: %s", type(exc).__name__, exc, exc_info=exc)
    return None
