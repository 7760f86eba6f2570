"""
SQL Risk Event Log

Append-only risk event log backed by PostgreSQL.
"""

from typing import Optional, Sequence

from sqlalchemy import select

from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.database.connection import DatabaseManager
from crisisline.infrastructure.database.models.risk_event_model import RiskEventModel
from crisisline.infrastructure.storage.base import RiskEventLog


class SqlRiskEventLog(RiskEventLog):
    """RiskEventLog over the risk_events table."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def append(self, event: RiskEvent) -> None:
        async with self._db.session() as session:
            session.add(RiskEventModel.from_domain(event))

    async def get(self, event_id: str) -> Optional[RiskEvent]:
        async with self._db.session() as session:
            row = await session.get(RiskEventModel, event_id)
            return row.to_domain() if row else None

    async def list_for_subject(self, subject_id: str) -> Sequence[RiskEvent]:
        async with self._db.session() as session:
            result = await session.execute(
                select(RiskEventModel)
                .where(RiskEventModel.subject_id == subject_id)
                .order_by(RiskEventModel.detected_at)
            )
            return [row.to_domain() for row in result.scalars().all()]
