"""
Escalation Models

Actions and state tracked for a risk event while the escalation
engine responds to it.

SAFETY-CRITICAL: Action order is fixed. The auto-reply is always
attempted before resources and responder notification.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Optional
from uuid import uuid4

from crisisline.domain.models.risk_event import RiskEvent


class EscalationActionKind(StrEnum):
    """
    Units of response work, in dispatch priority order.
    """

    AUTO_REPLY = "auto_reply"
    """Immediate acknowledgment to the subject."""

    DISPATCH_RESOURCES = "dispatch_resources"
    """Top crisis resources sent to the subject."""

    NOTIFY_RESPONDER = "notify_responder"
    """Alert to the on-call responder."""


DISPATCH_ORDER: tuple[EscalationActionKind, ...] = (
    EscalationActionKind.AUTO_REPLY,
    EscalationActionKind.DISPATCH_RESOURCES,
    EscalationActionKind.NOTIFY_RESPONDER,
)


class EscalationState(StrEnum):
    """State machine for an escalation."""

    DETECTED = "detected"
    ROUTED = "routed"
    DISPATCHED = "dispatched"
    ACKNOWLEDGED = "acknowledged"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (EscalationState.ACKNOWLEDGED, EscalationState.TIMED_OUT)


@dataclass
class EscalationAction:
    """
    One action produced for a risk event.

    Attributes:
        kind: Action type
        payload: Action parameters (resource ids, channel, text)
        resulting_message_ids: Messages created by the action
        succeeded: Whether every send/notification was accepted
        error: Failure description, if any
    """

    kind: EscalationActionKind
    payload: dict = field(default_factory=dict)
    resulting_message_ids: list[str] = field(default_factory=list)
    succeeded: Optional[bool] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "payload": dict(self.payload),
            "resulting_message_ids": list(self.resulting_message_ids),
            "succeeded": self.succeeded,
            "error": self.error,
        }


@dataclass
class EscalationRecord:
    """
    Mutable record tracking one escalation through its states.

    Attributes:
        risk_event: Triggering event
        state: Current state
        actions: Routed actions in dispatch order
        deadline: Acknowledgment deadline (None = no timeout)
    """

    risk_event: RiskEvent
    state: EscalationState = EscalationState.DETECTED
    actions: list[EscalationAction] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"esc_{uuid4().hex[:16]}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dispatched_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    timed_out_at: Optional[datetime] = None

    @property
    def message_ids(self) -> list[str]:
        return [mid for a in self.actions for mid in a.resulting_message_ids]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "risk_event": self.risk_event.to_dict(),
            "state": self.state.value,
            "actions": [a.to_dict() for a in self.actions],
            "created_at": self.created_at.isoformat(),
            "dispatched_at": self.dispatched_at.isoformat() if self.dispatched_at else None,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "acknowledged_by": self.acknowledged_by,
            "timed_out_at": self.timed_out_at.isoformat() if self.timed_out_at else None,
        }
