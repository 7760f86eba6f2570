"""
Risk Event

Immutable record of a detected risk condition. Produced by the
assessment flow, the messaging gateway (inbound SMS) or an explicit
crisis alert, and consumed by the escalation engine.

AUDIT: Risk events are appended to the risk event log and never
modified afterwards.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from crisisline.domain.enums.risk_level import RiskLevel, RiskSource


def _event_id() -> str:
    return f"evt_{uuid4().hex[:16]}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RiskEvent:
    """
    A detected risk condition.

    Attributes:
        source_type: Where the risk was detected
        subject_id: Person at risk (user id or SMS address)
        raw_score: Assessment score, or indicator count for messages
        risk_level: Level used for routing
        indicators_matched: Crisis indicators found in the content
        reply_address: SMS address of the subject, when reachable by SMS
        detected_at: Detection time (UTC)
        id: Event identifier
    """

    source_type: RiskSource
    subject_id: str
    raw_score: float
    risk_level: RiskLevel
    indicators_matched: frozenset[str] = frozenset()
    reply_address: Optional[str] = None
    detected_at: datetime = field(default_factory=_now)
    id: str = field(default_factory=_event_id)

    @classmethod
    def detected(
        cls,
        source_type: RiskSource,
        subject_id: str,
        raw_score: float,
        risk_level: RiskLevel,
        indicators: frozenset[str] = frozenset(),
        indicator_level: RiskLevel = RiskLevel.CRISIS,
        reply_address: Optional[str] = None,
    ) -> "RiskEvent":
        """
        Build an event, raising the level when indicators matched.

        SAFETY-CRITICAL: A matched indicator always routes at least
        at indicator_level, whatever the score said.
        """
        if indicators:
            risk_level = max(risk_level, indicator_level)
        return cls(
            source_type=source_type,
            subject_id=subject_id,
            raw_score=raw_score,
            risk_level=risk_level,
            indicators_matched=frozenset(indicators),
            reply_address=reply_address,
        )

    @property
    def crisis_detected(self) -> bool:
        return self.risk_level >= RiskLevel.HIGH or bool(self.indicators_matched)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_type": self.source_type.value,
            "subject_id": self.subject_id,
            "raw_score": self.raw_score,
            "risk_level": self.risk_level.slug,
            "indicators_matched": sorted(self.indicators_matched),
            "detected_at": self.detected_at.isoformat(),
            "crisis_detected": self.crisis_detected,
        }
