"""
Notification Sink

In-session alert channel used when a recipient cannot be reached by
SMS: subjects in an assessment session, the on-call responder when
no responder address is configured, and operators receiving timeout
signals.

PRIVACY: Alert bodies may contain crisis context. Sinks log alert
metadata only.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


class AlertAudience(StrEnum):
    """Who an alert is for."""

    SUBJECT = "subject"
    """The person at risk, reached in-session."""

    RESPONDER = "responder"
    """On-call crisis responder."""

    OPERATOR = "operator"
    """Service operators (timeouts, failures)."""


@dataclass
class Alert:
    """
    One in-session notification.

    Attributes:
        audience: Intended recipient group
        subject_id: Person the alert concerns
        title: Short summary
        body: Alert content
        escalation_id: Related escalation, if any
        risk_level: Slug of the risk level that triggered the alert
    """

    audience: AlertAudience
    subject_id: str
    title: str
    body: str = ""
    escalation_id: Optional[str] = None
    risk_level: Optional[str] = None
    id: str = field(default_factory=lambda: f"alt_{uuid4().hex[:16]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "audience": self.audience.value,
            "subject_id": self.subject_id,
            "title": self.title,
            "body": self.body,
            "escalation_id": self.escalation_id,
            "risk_level": self.risk_level,
            "created_at": self.created_at.isoformat(),
        }


class NotificationSink(ABC):
    """Destination for in-session alerts."""

    @abstractmethod
    async def notify(self, alert: Alert) -> None:
        """Deliver an alert."""


class LoggingNotificationSink(NotificationSink):
    """Writes alert metadata to the structured log."""

    async def notify(self, alert: Alert) -> None:
        log = logger.warning if alert.audience != AlertAudience.SUBJECT else logger.info
        log(
            "Alert raised",
            alert_id=alert.id,
            audience=alert.audience.value,
            title=alert.title,
            escalation_id=alert.escalation_id,
            risk_level=alert.risk_level,
        )


class InMemoryNotificationSink(LoggingNotificationSink):
    """
    Logs alerts and keeps the most recent ones for retrieval.

    Usage:
        sink = InMemoryNotificationSink()
        await sink.notify(alert)
        sink.for_escalation(escalation_id)
    """

    def __init__(self, max_alerts: int = 1000) -> None:
        self._alerts: deque[Alert] = deque(maxlen=max_alerts)

    async def notify(self, alert: Alert) -> None:
        await super().notify(alert)
        self._alerts.append(alert)

    @property
    def alerts(self) -> list[Alert]:
        return list(self._alerts)

    def for_escalation(
        self,
        escalation_id: str,
        audience: Optional[AlertAudience] = None,
    ) -> list[Alert]:
        return [
            a for a in self._alerts
            if a.escalation_id == escalation_id
            and (audience is None or a.audience == audience)
        ]

    def for_audience(self, audience: AlertAudience) -> list[Alert]:
        return [a for a in self._alerts if a.audience == audience]
