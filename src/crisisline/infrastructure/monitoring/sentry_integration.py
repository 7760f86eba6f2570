"""
Sentry Integration

Optional error tracking. Nothing is initialized without a DSN, and the
capture helpers are no-ops in that case because the SDK has no client.

PRIVACY: Events leave the process only after before_send has removed
SMS bodies, safety plan content, carrier credentials and phone numbers.
Request payloads here are crisis messages; treat every string as
potentially sensitive.
"""

import re
from typing import Any, Optional

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)

REDACTED = "[REDACTED]"
PHONE_PLACEHOLDER = "[PHONE]"

# key=value or key: value pairs carrying credentials, and the carrier auth header
_INLINE_SECRET_RE = re.compile(
    r"(?:password|access[_-]?key|token|secret|authorization)[\"']?\s*[:=]\s*[\"']?[^\"'\s,}]+"
    r"|accesskey\s+\S+",
    re.IGNORECASE,
)
_PHONE_RE = re.compile(r"\+?\d[\d\s\-()]{6,}\d")

# Field-name fragments whose values are dropped
SCRUBBED_KEY_FRAGMENTS: tuple[str, ...] = (
    "password",
    "token",
    "secret",
    "access_key",
    "authorization",
    "credential",
    "body",
    "message",
    "text",
    "warning_signs",
    "coping_strategies",
    "commitment_statement",
)


def _scrub_text(value: str) -> str:
    return _PHONE_RE.sub(PHONE_PLACEHOLDER, _INLINE_SECRET_RE.sub(REDACTED, value))


def _is_scrubbed_key(key: Any) -> bool:
    normalized = str(key).lower().replace("-", "_")
    return any(fragment in normalized for fragment in SCRUBBED_KEY_FRAGMENTS)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _scrub_text(value)
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_scrubbed_key(key) else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def before_send(event: dict, hint: dict) -> Optional[dict]:
    """Scrub the request, breadcrumbs and extra context of an event."""
    request = event.get("request")
    if isinstance(request, dict):
        for part in ("data", "headers", "query_string", "cookies"):
            if part in request:
                request[part] = _scrub(request[part])

    for breadcrumb in event.get("breadcrumbs", {}).get("values", []):
        for part in ("data", "message"):
            if part in breadcrumb:
                breadcrumb[part] = _scrub(breadcrumb[part])

    if "extra" in event:
        event["extra"] = _scrub(event["extra"])

    return event


def init_sentry(
    dsn: str,
    environment: str = "development",
    release: Optional[str] = None,
    sample_rate: float = 1.0,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize Sentry when a DSN is configured.

    Logging records are not turned into Sentry events; errors reach
    Sentry through the FastAPI integration and the capture helpers.

    Returns:
        True if Sentry was initialized
    """
    if not dsn:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        sample_rate=sample_rate,
        traces_sample_rate=traces_sample_rate,
        before_send=before_send,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            AsyncioIntegration(),
            LoggingIntegration(level=None, event_level=None),
        ],
        send_default_pii=False,
        max_breadcrumbs=50,
    )

    logger.info("Sentry initialized", environment=environment, release=release)
    return True


def capture_safety_event(
    message: str,
    level: str = "warning",
    extra: Optional[dict] = None,
) -> None:
    """Report an escalation problem (timeout, failed dispatch) as a Sentry message."""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("category", "safety")
        for key, value in _scrub(extra or {}).items():
            scope.set_extra(key, value)
        sentry_sdk.capture_message(message, level="error" if level == "error" else "warning")


def capture_exception_with_context(
    exception: BaseException,
    correlation_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> Optional[str]:
    """
    Capture an exception tagged with the request's correlation id.

    Returns:
        Sentry event id, or None when Sentry is disabled
    """
    with sentry_sdk.new_scope() as scope:
        if correlation_id:
            scope.set_tag("correlation_id", correlation_id)
        for key, value in _scrub(extra or {}).items():
            scope.set_extra(key, value)
        return sentry_sdk.capture_exception(exception)
