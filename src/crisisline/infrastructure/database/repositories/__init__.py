"""
Database repositories package.
"""

from crisisline.infrastructure.database.repositories.message_repository import SqlMessageRepository
from crisisline.infrastructure.database.repositories.risk_event_repository import SqlRiskEventLog

__all__ = [
    "SqlMessageRepository",
    "SqlRiskEventLog",
]
