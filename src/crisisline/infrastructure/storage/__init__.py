"""Storage package - repository interfaces and in-memory implementations."""

from crisisline.infrastructure.storage.base import (
    EscalationRepository,
    MessageRepository,
    RiskEventLog,
)
from crisisline.infrastructure.storage.memory import (
    InMemoryEscalationRepository,
    InMemoryMessageRepository,
    InMemoryRiskEventLog,
)

__all__ = [
    "EscalationRepository",
    "MessageRepository",
    "RiskEventLog",
    "InMemoryEscalationRepository",
    "InMemoryMessageRepository",
    "InMemoryRiskEventLog",
]
