"""Sentry configuration and initialization for error tracking."""

import logging
import os
import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from achievement_engine.exceptions import ValidationError

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry SDK for error tracking.

    Environment variables:
        SENTRY_DSN: Sentry project DSN (required)
        SENTRY_ENVIRONMENT: Environment name (development, staging, production)
        ENABLE_SENTRY: Feature flag to enable/disable Sentry
        GIT_COMMIT_SHA: Git commit SHA for release tracking (optional)

    Returns:
        True if Sentry was initialized
    """
    from achievement_engine.config import ENABLE_SENTRY, SENTRY_DSN, SENTRY_ENVIRONMENT

    if not ENABLE_SENTRY:
        logger.info("Sentry is disabled (ENABLE_SENTRY=false)")
        return False

    if not SENTRY_DSN:
        logger.warning("Sentry DSN not configured - error tracking disabled")
        return False

    release = os.getenv("GIT_COMMIT_SHA")
    if release:
        release = f"achievement-engine@{release[:7]}"
    else:
        release = "achievement-engine@dev"

    # Failed evaluation passes are logged at ERROR, which becomes a Sentry event
    logging_integration = LoggingIntegration(
        level=logging.INFO,
        event_level=logging.ERROR,
    )

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        release=release,
        integrations=[logging_integration],
        attach_stacktrace=True,
        before_send=_before_send,
    )

    logger.info(f"Sentry initialized: environment={SENTRY_ENVIRONMENT}, release={release}")
    return True


def _before_send(event, hint):
    """
    Drop events caused by rejected input; those are caller mistakes, not faults.
    """
    if "exc_info" in hint:
        exc_type, exc_value, tb = hint["exc_info"]
        if isinstance(exc_value, ValidationError):
            return None

    # Engine errors log themselves; the record carries the error class name
    record = hint.get("log_record")
    if record is not None and getattr(record, "error_type", None) == ValidationError.__name__:
        return None

    return event


def shutdown_sentry() -> None:
    """Flush pending events before the process exits."""
    if sentry_sdk.is_initialized():
        logger.info("Flushing Sentry events before shutdown...")
        sentry_sdk.flush(timeout=2.0)
