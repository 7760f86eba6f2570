"""
Database ORM models package.
"""

from crisisline.infrastructure.database.models.message_model import MessageModel
from crisisline.infrastructure.database.models.risk_event_model import RiskEventModel

__all__ = [
    "MessageModel",
    "RiskEventModel",
]
