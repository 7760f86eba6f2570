"""
Service Container

Builds and wires every service for one application instance. The
container lives on app.state and reaches handlers through a FastAPI
dependency; nothing in the service layer is a module-level singleton.
"""

from dataclasses import dataclass
from typing import Optional

from crisisline.config.settings import Settings
from crisisline.domain.enums import RiskLevel
from crisisline.infrastructure.database import DatabaseManager
from crisisline.infrastructure.database.repositories import SqlMessageRepository, SqlRiskEventLog
from crisisline.infrastructure.storage import (
    EscalationRepository,
    InMemoryEscalationRepository,
    InMemoryMessageRepository,
    InMemoryRiskEventLog,
    MessageRepository,
    RiskEventLog,
)
from crisisline.services.classification import IndicatorScanner, RiskClassifier
from crisisline.services.escalation import (
    EscalationEngine,
    InMemoryNotificationSink,
    NotificationSink,
)
from crisisline.services.messaging import (
    CarrierClient,
    MessagingGateway,
    create_carrier_client,
)
from crisisline.services.resources import ResourceCatalog
from crisisline.services.safety_plan import SafetyPlanStore
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Wired services for one application instance."""

    settings: Settings
    scanner: IndicatorScanner
    classifier: RiskClassifier
    catalog: ResourceCatalog
    safety_plans: SafetyPlanStore
    carrier: CarrierClient
    gateway: MessagingGateway
    sink: NotificationSink
    engine: EscalationEngine
    messages: MessageRepository
    risk_events: RiskEventLog
    escalations: EscalationRepository
    database: Optional[DatabaseManager] = None

    @property
    def indicator_level(self) -> RiskLevel:
        return RiskLevel.parse(self.settings.escalation.indicator_risk_level)

    async def startup(self) -> None:
        if self.database is not None:
            await self.database.initialize()

    async def shutdown(self) -> None:
        await self.carrier.aclose()
        if self.database is not None:
            await self.database.close()


def build_container(
    settings: Settings,
    *,
    carrier: Optional[CarrierClient] = None,
    sink: Optional[NotificationSink] = None,
    catalog: Optional[ResourceCatalog] = None,
) -> ServiceContainer:
    """
    Create all services and connect the gateway and escalation engine.

    Args:
        settings: Application settings
        carrier: Carrier override (tests pass a fake)
        sink: Notification sink override
        catalog: Resource catalog override

    Returns:
        Wired ServiceContainer (call startup() before serving)
    """
    escalation_settings = settings.escalation
    indicator_level = RiskLevel.parse(escalation_settings.indicator_risk_level)

    database: Optional[DatabaseManager] = None
    messages: MessageRepository
    risk_events: RiskEventLog
    if settings.storage_backend == "database":
        database = DatabaseManager(settings.database, echo=settings.debug)
        messages = SqlMessageRepository(database)
        risk_events = SqlRiskEventLog(database)
    else:
        messages = InMemoryMessageRepository()
        risk_events = InMemoryRiskEventLog()
    escalations = InMemoryEscalationRepository()

    scanner = IndicatorScanner(escalation_settings.extra_indicator_phrases)
    carrier = carrier or create_carrier_client(settings.carrier)
    sink = sink or InMemoryNotificationSink()
    catalog = catalog or ResourceCatalog(config_path=settings.resources_config_path)

    gateway = MessagingGateway(
        repository=messages,
        carrier=carrier,
        originator=settings.carrier.originator,
        send_timeout_seconds=settings.carrier.send_timeout_seconds,
        scanner=scanner,
        indicator_level=indicator_level,
    )
    engine = EscalationEngine(
        gateway=gateway,
        catalog=catalog,
        sink=sink,
        escalations=escalations,
        risk_log=risk_events,
        settings=escalation_settings,
    )
    gateway.set_escalation_handler(engine.handle)
    gateway.add_delivery_listener(engine.on_message_delivered)

    logger.info(
        "Services wired",
        storage_backend=settings.storage_backend,
        carrier=carrier.provider_name,
        resource_count=len(catalog),
    )

    return ServiceContainer(
        settings=settings,
        scanner=scanner,
        classifier=RiskClassifier(scanner),
        catalog=catalog,
        safety_plans=SafetyPlanStore(),
        carrier=carrier,
        gateway=gateway,
        sink=sink,
        engine=engine,
        messages=messages,
        risk_events=risk_events,
        escalations=escalations,
        database=database,
    )
