"""
In-Memory Storage

Dictionary-backed repositories used in development, tests, and
single-instance deployments. All access happens on the event loop
thread, so the dictionaries need no locking of their own; callers
serialize read-modify-write sequences with KeyedLock.
"""

from collections import defaultdict
from typing import Optional, Sequence

from crisisline.domain.models.escalation import EscalationRecord, EscalationState
from crisisline.domain.models.message import Message
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.storage.base import (
    EscalationRepository,
    MessageRepository,
    RiskEventLog,
)


class InMemoryMessageRepository(MessageRepository):
    """Messages keyed by id with secondary indexes."""

    def __init__(self) -> None:
        self._messages: dict[str, Message] = {}
        self._by_external_id: dict[str, str] = {}
        self._by_address: defaultdict[str, list[str]] = defaultdict(list)

    async def add(self, message: Message) -> Message:
        self._messages[message.id] = message
        self._by_address[message.counterparty_address].append(message.id)
        self._index_external_id(message)
        return message

    async def save(self, message: Message) -> Message:
        self._messages[message.id] = message
        self._index_external_id(message)
        return message

    async def get(self, message_id: str) -> Optional[Message]:
        return self._messages.get(message_id)

    async def get_by_external_id(self, external_message_id: str) -> Optional[Message]:
        message_id = self._by_external_id.get(external_message_id)
        return self._messages.get(message_id) if message_id else None

    async def list_by_address(self, address: str) -> Sequence[Message]:
        messages = [self._messages[mid] for mid in self._by_address.get(address, [])]
        return sorted(messages, key=lambda m: m.created_at)

    def _index_external_id(self, message: Message) -> None:
        if message.external_message_id:
            self._by_external_id[message.external_message_id] = message.id


class InMemoryRiskEventLog(RiskEventLog):
    """Append-only list of risk events."""

    def __init__(self) -> None:
        self._events: list[RiskEvent] = []

    async def append(self, event: RiskEvent) -> None:
        self._events.append(event)

    async def get(self, event_id: str) -> Optional[RiskEvent]:
        return next((e for e in self._events if e.id == event_id), None)

    async def list_for_subject(self, subject_id: str) -> Sequence[RiskEvent]:
        return [e for e in self._events if e.subject_id == subject_id]


class InMemoryEscalationRepository(EscalationRepository):
    """Escalation records with a message-id index for acknowledgments."""

    def __init__(self) -> None:
        self._records: dict[str, EscalationRecord] = {}

    async def add(self, record: EscalationRecord) -> EscalationRecord:
        self._records[record.id] = record
        return record

    async def save(self, record: EscalationRecord) -> EscalationRecord:
        self._records[record.id] = record
        return record

    async def get(self, escalation_id: str) -> Optional[EscalationRecord]:
        return self._records.get(escalation_id)

    async def find_by_message_id(self, message_id: str) -> Optional[EscalationRecord]:
        for record in self._records.values():
            if message_id in record.message_ids:
                return record
        return None

    async def list_dispatched(self) -> Sequence[EscalationRecord]:
        return [
            r for r in self._records.values()
            if r.state == EscalationState.DISPATCHED
        ]
