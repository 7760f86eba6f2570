"""Domain models package."""

from crisisline.domain.models.assessment import (
    Assessment,
    AssessmentQuestion,
    ClassificationResult,
    QuestionOption,
    QuestionResponse,
    QuestionType,
    RiskLevelDefinition,
    ScoringMethod,
)
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.domain.models.message import Message
from crisisline.domain.models.crisis_resource import (
    CoverageArea,
    CrisisResource,
    HoursOfOperation,
    ResourceFilter,
    ServiceType,
)
from crisisline.domain.models.safety_plan import (
    CopingStrategy,
    EmergencyPlan,
    ProfessionalContact,
    ReviewSchedule,
    SafetyPlan,
    SupportContact,
)
from crisisline.domain.models.escalation import (
    EscalationAction,
    EscalationActionKind,
    EscalationRecord,
    EscalationState,
)

__all__ = [
    # Assessment
    "Assessment",
    "AssessmentQuestion",
    "ClassificationResult",
    "QuestionOption",
    "QuestionResponse",
    "QuestionType",
    "RiskLevelDefinition",
    "ScoringMethod",
    # Risk events
    "RiskEvent",
    # Messaging
    "Message",
    # Resources
    "CoverageArea",
    "CrisisResource",
    "HoursOfOperation",
    "ResourceFilter",
    "ServiceType",
    # Safety plans
    "CopingStrategy",
    "EmergencyPlan",
    "ProfessionalContact",
    "ReviewSchedule",
    "SafetyPlan",
    "SupportContact",
    # Escalation
    "EscalationAction",
    "EscalationActionKind",
    "EscalationRecord",
    "EscalationState",
]
