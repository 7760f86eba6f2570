"""Escalation protocol and notification services."""

from crisisline.services.escalation.notification_sink import (
    Alert,
    AlertAudience,
    InMemoryNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
)
from crisisline.services.escalation.escalation_engine import (
    ROUTING_TABLE,
    EscalationEngine,
    Route,
)

__all__ = [
    # Notifications
    "Alert",
    "AlertAudience",
    "InMemoryNotificationSink",
    "LoggingNotificationSink",
    "NotificationSink",
    # Engine
    "ROUTING_TABLE",
    "EscalationEngine",
    "Route",
]
