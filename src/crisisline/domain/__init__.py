"""
CRISISLINE Domain Layer

Core business entities and value objects.
These models represent the domain logic independent of infrastructure.
"""

from crisisline.domain.enums import MessageDirection, MessageStatus, RiskLevel, RiskSource
from crisisline.domain.models import (
    Assessment,
    ClassificationResult,
    CrisisResource,
    EscalationRecord,
    Message,
    RiskEvent,
    SafetyPlan,
)

__all__ = [
    # Enums
    "MessageDirection",
    "MessageStatus",
    "RiskLevel",
    "RiskSource",
    # Entities
    "Assessment",
    "ClassificationResult",
    "CrisisResource",
    "EscalationRecord",
    "Message",
    "RiskEvent",
    "SafetyPlan",
]
