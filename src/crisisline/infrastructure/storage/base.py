"""
Storage Interfaces

Abstract repositories for the shared mutable stores: messages, the
risk event log, and escalation records. Services depend on these
interfaces only; the in-memory and SQLAlchemy implementations are
selected at startup.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from crisisline.domain.models.escalation import EscalationRecord
from crisisline.domain.models.message import Message
from crisisline.domain.models.risk_event import RiskEvent


class MessageRepository(ABC):
    """Persistence for messages owned by the messaging gateway."""

    @abstractmethod
    async def add(self, message: Message) -> Message:
        """Store a new message."""

    @abstractmethod
    async def save(self, message: Message) -> Message:
        """Persist changes to an existing message."""

    @abstractmethod
    async def get(self, message_id: str) -> Optional[Message]:
        """Get message by internal id."""

    @abstractmethod
    async def get_by_external_id(self, external_message_id: str) -> Optional[Message]:
        """Get message by carrier-assigned id."""

    @abstractmethod
    async def list_by_address(self, address: str) -> Sequence[Message]:
        """
        All messages exchanged with an address.

        Returns:
            Messages ordered by created_at ascending
        """


class RiskEventLog(ABC):
    """Append-only log of risk events."""

    @abstractmethod
    async def append(self, event: RiskEvent) -> None:
        """Record an event."""

    @abstractmethod
    async def get(self, event_id: str) -> Optional[RiskEvent]:
        """Get event by id."""

    @abstractmethod
    async def list_for_subject(self, subject_id: str) -> Sequence[RiskEvent]:
        """Events for a subject in detection order."""


class EscalationRepository(ABC):
    """Escalation records tracked by the escalation engine."""

    @abstractmethod
    async def add(self, record: EscalationRecord) -> EscalationRecord:
        """Store a new record."""

    @abstractmethod
    async def save(self, record: EscalationRecord) -> EscalationRecord:
        """Persist changes to a record."""

    @abstractmethod
    async def get(self, escalation_id: str) -> Optional[EscalationRecord]:
        """Get record by id."""

    @abstractmethod
    async def find_by_message_id(self, message_id: str) -> Optional[EscalationRecord]:
        """Find the record whose actions produced a message."""

    @abstractmethod
    async def list_dispatched(self) -> Sequence[EscalationRecord]:
        """Records waiting for acknowledgment."""
