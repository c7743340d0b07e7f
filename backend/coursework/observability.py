"""
Error tracking through Sentry.

Sentry is optional: without ``SENTRY_DSN`` every call here is a no-op, so
development and tests never talk to an external service.

Usage:
    from coursework.observability import error_tracker

    error_tracker.init()  # once, at startup
    error_tracker.capture_error(exc, context={"path": "/v1/submissions"})
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from coursework.core.config import settings

logger = logging.getLogger(__name__)


def _serialize_value(value: Any) -> Any:
    """Convert a context value to something JSON-compatible."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize_value(item) for item in value]
    return str(value)


class ErrorTracker:
    """Thin wrapper around the Sentry SDK."""

    def __init__(self) -> None:
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def init(self) -> bool:
        """
        Initialize the Sentry SDK with FastAPI/Starlette integrations.

        Returns:
            True if Sentry was initialized, False if skipped (no DSN) or failed.

        Note:
            Does not raise; failures are logged and return False.
        """
        if not settings.SENTRY_DSN:
            logger.debug("Sentry initialization skipped (DSN not configured)")
            return False

        try:
            sentry_sdk.init(
                dsn=settings.SENTRY_DSN,
                environment=settings.ENV,
                release=settings.APP_VERSION,
                traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
                integrations=[
                    LoggingIntegration(
                        level=None,  # Don't capture breadcrumbs from logs
                        event_level=None,  # Don't send log events
                    ),
                    StarletteIntegration(transaction_style="endpoint"),
                    FastApiIntegration(transaction_style="endpoint"),
                ],
                send_default_pii=False,
            )
        except Exception as e:
            logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)
            return False

        self._initialized = True
        logger.info(
            f"Sentry initialized for environment '{settings.ENV}' "
            f"with {settings.SENTRY_TRACES_SAMPLE_RATE * 100:.0f}% trace sampling"
        )
        return True

    def capture_error(
        self,
        exception: BaseException,
        *,
        context: Optional[Dict[str, Any]] = None,
        tags: Optional[Dict[str, str]] = None,
        level: str = "error",
    ) -> Optional[str]:
        """
        Send an exception to Sentry.

        Args:
            exception: The exception to capture
            context: Extra data shown as "additional" context in Sentry
            tags: Low-cardinality tags for filtering
            level: Severity level

        Returns:
            Sentry event id, or None when Sentry is not initialized
        """
        if not self._initialized:
            return None

        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context(
                    "additional",
                    {key: _serialize_value(value) for key, value in context.items()},
                )
            if tags:
                for key, value in tags.items():
                    scope.set_tag(key, value)
            scope.level = level
            return sentry_sdk.capture_exception(exception)


error_tracker = ErrorTracker()
