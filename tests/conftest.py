"""Tests configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from crisisline.config import Settings
from crisisline.config.settings import EscalationSettings
from crisisline.domain.enums import RiskLevel
from crisisline.domain.models.assessment import (
    Assessment,
    AssessmentQuestion,
    RiskLevelDefinition,
    ScoringMethod,
)
from crisisline.infrastructure.storage import (
    InMemoryEscalationRepository,
    InMemoryMessageRepository,
    InMemoryRiskEventLog,
)
from crisisline.services.escalation import EscalationEngine, InMemoryNotificationSink
from crisisline.services.messaging import MessagingGateway, SandboxCarrierClient
from crisisline.services.resources import ResourceCatalog

ORIGINATOR = "+18005550100"
SUBJECT_PHONE = "+15551234567"
RESPONDER_PHONE = "+15559990000"


class FakeClock:
    """Settable UTC clock for deadline tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory storage and the sandbox carrier."""
    return Settings(
        env="development",
        debug=True,
        storage_backend="memory",
        escalation=EscalationSettings(
            crisis_window_minutes=10,
            high_window_minutes=30,
        ),
    )


@pytest.fixture
def carrier() -> SandboxCarrierClient:
    return SandboxCarrierClient()


@pytest.fixture
def sink() -> InMemoryNotificationSink:
    return InMemoryNotificationSink()


@pytest.fixture
def message_repository() -> InMemoryMessageRepository:
    return InMemoryMessageRepository()


@pytest.fixture
def gateway(
    message_repository: InMemoryMessageRepository,
    carrier: SandboxCarrierClient,
) -> MessagingGateway:
    return MessagingGateway(
        repository=message_repository,
        carrier=carrier,
        originator=ORIGINATOR,
        send_timeout_seconds=1.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def escalations() -> InMemoryEscalationRepository:
    return InMemoryEscalationRepository()


@pytest.fixture
def risk_log() -> InMemoryRiskEventLog:
    return InMemoryRiskEventLog()


@pytest.fixture
def engine_factory(
    gateway: MessagingGateway,
    sink: InMemoryNotificationSink,
    escalations: InMemoryEscalationRepository,
    risk_log: InMemoryRiskEventLog,
    clock: FakeClock,
):
    """Build an engine wired to the gateway with escalation setting overrides."""

    def factory(**settings: object) -> EscalationEngine:
        engine = EscalationEngine(
            gateway=gateway,
            catalog=ResourceCatalog(),
            sink=sink,
            escalations=escalations,
            risk_log=risk_log,
            settings=EscalationSettings(**settings),
            clock=clock,
        )
        gateway.set_escalation_handler(engine.handle)
        gateway.add_delivery_listener(engine.on_message_delivered)
        return engine

    return factory


@pytest.fixture
def engine(engine_factory) -> EscalationEngine:
    """Engine without a responder address: responder alerts go to the sink."""
    return engine_factory()


@pytest.fixture
def three_question_assessment() -> Assessment:
    """Three 0-4 scale questions summed, with contiguous bands over [0, 12]."""
    return Assessment(
        id="mood-check",
        title="Mood check",
        scoring_method=ScoringMethod.SUM,
        questions=tuple(
            AssessmentQuestion(id=f"q{i}", scale_min=0, scale_max=4)
            for i in range(1, 4)
        ),
        risk_levels=(
            RiskLevelDefinition(RiskLevel.NO_RISK, 0, 2),
            RiskLevelDefinition(RiskLevel.LOW, 2, 5),
            RiskLevelDefinition(RiskLevel.MODERATE, 5, 8),
            RiskLevelDefinition(RiskLevel.HIGH, 8, 12),
        ),
    )
