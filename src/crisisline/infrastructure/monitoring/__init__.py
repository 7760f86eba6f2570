"""Error tracking and monitoring package."""

from crisisline.infrastructure.monitoring.sentry_integration import (
    before_send,
    capture_exception_with_context,
    capture_safety_event,
    init_sentry,
)

__all__ = [
    "before_send",
    "capture_exception_with_context",
    "capture_safety_event",
    "init_sentry",
]
