"""
Message Model

SMS message owned by the messaging gateway. Identified internally
by id and correlated with carrier callbacks by external_message_id.

PRIVACY: Message bodies may contain crisis disclosures. Never log
the body; use to_dict() only for API responses to authorized callers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from crisisline.domain.enums.message_status import MessageDirection, MessageStatus


def _message_id() -> str:
    return f"msg_{uuid4().hex[:16]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Message:
    """
    An inbound or outbound SMS.

    Attributes:
        direction: Inbound or outbound
        counterparty_address: The other party's address
        body: Message text
        crisis_flag: Whether the message is part of a crisis response
            (outbound) or matched crisis indicators (inbound)
        status: Current delivery status
        local_address: Our address (originator / inbound destination)
        external_message_id: Carrier-assigned id
        failure_reason: Why the message failed, if it did
        escalation_id: Escalation this message was sent for
    """

    direction: MessageDirection
    counterparty_address: str
    body: str
    crisis_flag: bool = False
    status: MessageStatus = MessageStatus.QUEUED
    local_address: Optional[str] = None
    external_message_id: Optional[str] = None
    failure_reason: Optional[str] = None
    escalation_id: Optional[str] = None
    id: str = field(default_factory=_message_id)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    delivered_at: Optional[datetime] = None

    def apply_status(
        self,
        new_status: MessageStatus,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """
        Apply a forward-only status transition.

        Backward and duplicate transitions are ignored.

        Args:
            new_status: Target status
            timestamp: When the carrier observed the change

        Returns:
            True if the status changed
        """
        if not self.status.can_transition_to(new_status):
            return False

        now = _now()
        self.status = new_status
        self.updated_at = now
        if new_status == MessageStatus.DELIVERED:
            self.delivered_at = timestamp or now
        return True

    def mark_failed(self, reason: str) -> bool:
        changed = self.apply_status(MessageStatus.FAILED)
        if changed:
            self.failure_reason = reason
        return changed

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "direction": self.direction.value,
            "counterparty_address": self.counterparty_address,
            "body": self.body,
            "crisis_flag": self.crisis_flag,
            "status": self.status.value,
            "external_message_id": self.external_message_id,
            "failure_reason": self.failure_reason,
            "escalation_id": self.escalation_id,
            "created_at": self.created_at.isoformat(),
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
        }
