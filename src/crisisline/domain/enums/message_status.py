"""
Message Lifecycle Enumerations

Message status transitions only move forward:
queued -> sent -> delivered, or queued|sent -> failed.
Delivered and failed are terminal.
"""

from enum import StrEnum
from typing import Optional


class MessageDirection(StrEnum):
    """Direction of an SMS relative to this system."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageStatus(StrEnum):
    """Delivery status of a message."""

    QUEUED = "queued"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.DELIVERED, MessageStatus.FAILED)

    def can_transition_to(self, target: "MessageStatus") -> bool:
        """
        Check whether moving from this status to target is a forward move.

        Same-status moves are not transitions (duplicate webhooks).
        """
        if self.is_terminal or target == self:
            return False
        if target == MessageStatus.FAILED:
            return True
        return _RANK[target] > _RANK[self]

    @classmethod
    def from_carrier(cls, value: str) -> Optional["MessageStatus"]:
        """
        Normalize a carrier status string.

        Returns:
            The matching status, or None if the value is not recognized
        """
        return _CARRIER_STATUSES.get(value.strip().lower())


_RANK: dict[MessageStatus, int] = {
    MessageStatus.QUEUED: 0,
    MessageStatus.SENT: 1,
    MessageStatus.DELIVERED: 2,
}

# MessageBird-style delivery report vocabulary
_CARRIER_STATUSES: dict[str, MessageStatus] = {
    "queued": MessageStatus.QUEUED,
    "scheduled": MessageStatus.QUEUED,
    "accepted": MessageStatus.QUEUED,
    "sent": MessageStatus.SENT,
    "buffered": MessageStatus.SENT,
    "delivered": MessageStatus.DELIVERED,
    "failed": MessageStatus.FAILED,
    "expired": MessageStatus.FAILED,
    "delivery_failed": MessageStatus.FAILED,
    "undelivered": MessageStatus.FAILED,
}
