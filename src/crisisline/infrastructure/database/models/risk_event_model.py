"""
Risk Event Database Model

Append-only audit table of detected risk events.

CLINICAL_REVIEW_REQUIRED: Data retention for risk events should be
reviewed clinically and legally.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from crisisline.domain.enums import RiskLevel, RiskSource
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.database.connection import Base


class RiskEventModel(Base):
    """
    Risk events table ORM model.

    Table: risk_events
    """

    __tablename__ = "risk_events"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    raw_score: Mapped[float] = mapped_column(Float, default=0.0)
    risk_level: Mapped[int] = mapped_column(Integer, nullable=False, index=True, doc="RiskLevel value (0-5)")
    indicators_matched: Mapped[list] = mapped_column(JSON, default=list)
    reply_address: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    @classmethod
    def from_domain(cls, event: RiskEvent) -> "RiskEventModel":
        return cls(
            id=event.id,
            source_type=event.source_type.value,
            subject_id=event.subject_id,
            raw_score=event.raw_score,
            risk_level=int(event.risk_level),
            indicators_matched=sorted(event.indicators_matched),
            reply_address=event.reply_address,
            detected_at=event.detected_at,
        )

    def to_domain(self) -> RiskEvent:
        return RiskEvent(
            id=self.id,
            source_type=RiskSource(self.source_type),
            subject_id=self.subject_id,
            raw_score=self.raw_score,
            risk_level=RiskLevel(self.risk_level),
            indicators_matched=frozenset(self.indicators_matched or ()),
            reply_address=self.reply_address,
            detected_at=self.detected_at,
        )

    def __repr__(self) -> str:
        return f"<RiskEvent(id={self.id}, risk_level={self.risk_level})>"
