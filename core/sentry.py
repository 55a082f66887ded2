"""Sentry error tracking integration."""

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

logger = logging.getLogger(__name__)


def init_sentry(
    dsn: str | None,
    environment: str = "production",
    release: str | None = None,
    traces_sample_rate: float = 1.0,
) -> None:
    """Initialize Sentry SDK with FastAPI integration.

    The indexer worker calls this too; the FastAPI integration is inert there.

    Args:
        dsn: Sentry DSN (Data Source Name). If None, Sentry is not initialized.
        environment: Deployment environment (e.g., "production", "staging", "development")
        release: Optional release version string
        traces_sample_rate: Fraction of transactions sent for performance monitoring
    """
    if not dsn:
        logger.info("Sentry DSN not configured, skipping initialization")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(),
        ],
        traces_sample_rate=traces_sample_rate,
        sample_rate=1.0,
    )

    logger.info(f"Sentry initialized (environment: {environment})")


def add_breadcrumb(
    category: str,
    operation: str,
    data: dict[str, Any] | None = None,
    level: str = "info",
) -> None:
    """Add a breadcrumb for a provider, cache or indexer operation.

    Breadcrumbs are recorded events leading up to an error.

    Args:
        category: Subsystem name (e.g., "youtube", "soundcloud", "indexer")
        operation: Name of the operation (e.g., "search", "scrape_url")
        data: Optional dictionary of contextual data
        level: Severity level ("debug", "info", "warning", "error")
    """
    sentry_sdk.add_breadcrumb(
        category=category,
        message=operation,
        data=data or {},
        level=level,
    )


def capture_exception(
    error: BaseException,
    context: dict[str, Any] | None = None,
    context_name: str = "auxstream",
) -> None:
    """Capture an exception and send it to Sentry.

    Args:
        error: The exception to capture
        context: Optional dictionary of contextual data to attach
        context_name: Key under which the context is attached
    """
    if context:
        sentry_sdk.set_context(context_name, context)

    sentry_sdk.capture_exception(error)
