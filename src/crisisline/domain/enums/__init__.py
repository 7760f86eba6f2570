"""Domain enums package."""

from crisisline.domain.enums.risk_level import RiskLevel, RiskSource
from crisisline.domain.enums.message_status import MessageDirection, MessageStatus

__all__ = ["RiskLevel", "RiskSource", "MessageDirection", "MessageStatus"]
