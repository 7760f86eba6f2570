"""
Assessment Endpoints

Classifies a submitted assessment and, when the submission names a
subject, hands the resulting risk event to the escalation engine.

CLINICAL_REVIEW_REQUIRED: Score bands arrive with the assessment
definition and are validated before any scoring happens.
"""

from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crisisline.api.dependencies import get_container, ok
from crisisline.domain.enums import RiskLevel, RiskSource
from crisisline.domain.exceptions import ValidationError
from crisisline.domain.models.assessment import (
    Assessment,
    AssessmentQuestion,
    QuestionOption,
    QuestionResponse,
    QuestionType,
    RiskLevelDefinition,
    ScoringMethod,
)
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.metrics import track_classification
from crisisline.services.container import ServiceContainer
from crisisline.services.escalation import AlertAudience, InMemoryNotificationSink

router = APIRouter()


# Request Models

class OptionIn(BaseModel):
    id: str
    text: str = ""
    value: float


class QuestionIn(BaseModel):
    id: str
    question_text: str = ""
    question_type: QuestionType = QuestionType.SCALE
    options: list[OptionIn] = Field(default_factory=list)
    scale_min: Optional[float] = None
    scale_max: Optional[float] = None
    required: bool = True
    category: Optional[str] = None
    weight: float = 1.0

    def to_domain(self) -> AssessmentQuestion:
        return AssessmentQuestion(
            id=self.id,
            question_text=self.question_text,
            question_type=self.question_type,
            options=tuple(QuestionOption(o.id, o.text, o.value) for o in self.options),
            scale_min=self.scale_min,
            scale_max=self.scale_max,
            required=self.required,
            category=self.category,
            weight=self.weight,
        )


class RiskLevelIn(BaseModel):
    level: str
    min_score: float
    max_score: float
    description: str = ""
    recommendations: list[str] = Field(default_factory=list)
    crisis_resource_ids: list[str] = Field(default_factory=list)
    professional_referral: bool = False
    follow_up_required: bool = False
    follow_up_timeframe_hours: Optional[int] = None

    def to_domain(self) -> RiskLevelDefinition:
        try:
            level = RiskLevel.parse(self.level)
        except ValueError:
            raise ValidationError(f"Unknown risk level: {self.level}") from None
        return RiskLevelDefinition(
            level=level,
            min_score=self.min_score,
            max_score=self.max_score,
            description=self.description,
            recommendations=tuple(self.recommendations),
            crisis_resource_ids=tuple(self.crisis_resource_ids),
            professional_referral=self.professional_referral,
            follow_up_required=self.follow_up_required,
            follow_up_timeframe_hours=self.follow_up_timeframe_hours,
        )


class AssessmentIn(BaseModel):
    id: str
    title: str = ""
    type: str = "general_wellness"
    scoring_method: str = ScoringMethod.SUM.value
    questions: list[QuestionIn]
    risk_levels: list[RiskLevelIn]

    def to_domain(self) -> Assessment:
        try:
            method = ScoringMethod(self.scoring_method)
        except ValueError:
            raise ValidationError(f"Unsupported scoring method: {self.scoring_method}") from None
        return Assessment(
            id=self.id,
            title=self.title,
            type=self.type,
            scoring_method=method,
            questions=tuple(q.to_domain() for q in self.questions),
            risk_levels=tuple(r.to_domain() for r in self.risk_levels),
        )


class ResponseIn(BaseModel):
    question_id: str
    response_value: Optional[Union[bool, float, str, list[str]]] = None
    response_text: Optional[str] = None


class ClassifyRequest(BaseModel):
    """
    Assessment submission.

    subject_id enables escalation; reply_address lets escalation
    reach the subject by SMS instead of in-session alerts.
    """

    assessment: AssessmentIn
    responses: list[ResponseIn]
    subject_id: Optional[str] = None
    reply_address: Optional[str] = None


# Endpoints

@router.post(
    "/classify",
    summary="Classify an assessment submission",
)
async def classify_assessment(
    request: ClassifyRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """
    Score and classify a submission.

    Returns the classification, the escalation record (when a
    subject was named) and any in-session alerts for the subject.
    """
    assessment = request.assessment.to_domain()
    responses = [
        QuestionResponse(r.question_id, r.response_value, r.response_text)
        for r in request.responses
    ]

    result = container.classifier.classify_assessment(assessment, responses)
    track_classification(result.risk_level.slug, result.clamped)

    data: dict = {"classification": result.to_dict(), "escalation": None, "alerts": []}
    if not request.subject_id:
        return ok(data)

    event = RiskEvent.detected(
        source_type=RiskSource.ASSESSMENT,
        subject_id=request.subject_id,
        raw_score=result.score,
        risk_level=result.risk_level,
        indicators=result.indicators,
        indicator_level=container.indicator_level,
        reply_address=request.reply_address,
    )
    record = await container.engine.handle(event)
    data["escalation"] = record.to_dict()

    if isinstance(container.sink, InMemoryNotificationSink):
        data["alerts"] = [
            a.to_dict()
            for a in container.sink.for_escalation(record.id, AlertAudience.SUBJECT)
        ]
    return ok(data)
