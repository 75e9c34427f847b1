"""Error reporting helpers."""

from __future__ import annotations

import logging
from typing import Optional

import sentry_sdk

logger = logging.getLogger("obs")


def init_sentry(dsn: Optional[str] = None, env: Optional[str] = None) -> None:
    """Initialize Sentry when a DSN is configured."""
    if not dsn:
        logger.info("ERROR_DSN not set; error sink disabled")
        return
    sentry_sdk.init(dsn=dsn, environment=env)


def capture_exception(exc: Exception) -> Optional[str]:
    """Forward an exception to Sentry if configured, else log it.

    Returns the Sentry event id when one was recorded.
    """
    if sentry_sdk.get_client().is_active():
        return sentry_sdk.capture_exception(exc)
    logger.exception("Unhandled exception", exc_info=exc)
    return None
