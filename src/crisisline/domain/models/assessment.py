"""
Assessment Models

Structured assessment definitions, submitted responses, and the
classification result produced by the risk classifier.

CLINICAL_REVIEW_REQUIRED: Score bands in RiskLevelDefinition
must be validated per instrument before production use.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Union

from crisisline.domain.enums.risk_level import RiskLevel


ResponseValue = Union[str, int, float, bool, list[str]]


class ScoringMethod(StrEnum):
    """How question values combine into an assessment score."""

    SUM = "sum"
    AVERAGE = "average"
    WEIGHTED_SUM = "weighted_sum"
    CATEGORY_SUM = "category_sum"


class QuestionType(StrEnum):
    """Answer format of a question."""

    MULTIPLE_CHOICE = "multiple_choice"
    SCALE = "scale"
    TEXT = "text"
    BOOLEAN = "boolean"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class QuestionOption:
    """A selectable answer with its score value."""

    id: str
    text: str
    value: float


@dataclass(frozen=True)
class AssessmentQuestion:
    """
    A single assessment question.

    Attributes:
        id: Question identifier
        question_text: Prompt shown to the user
        question_type: Answer format
        options: Choices for multiple_choice / checkbox questions
        scale_min: Lowest value of a scale question
        scale_max: Highest value of a scale question
        required: Whether scoring requires an answer
        category: Category used by category_sum scoring
        weight: Multiplier used by weighted_sum scoring
    """

    id: str
    question_text: str = ""
    question_type: QuestionType = QuestionType.SCALE
    options: tuple[QuestionOption, ...] = ()
    scale_min: Optional[float] = None
    scale_max: Optional[float] = None
    required: bool = True
    category: Optional[str] = None
    weight: float = 1.0

    @property
    def is_scored(self) -> bool:
        """Text questions never contribute to the score."""
        return self.question_type != QuestionType.TEXT

    def value_bounds(self) -> tuple[float, float]:
        """Lowest and highest value this question can contribute."""
        if self.question_type == QuestionType.BOOLEAN:
            return 0.0, 1.0
        if self.question_type == QuestionType.CHECKBOX:
            positives = sum(o.value for o in self.options if o.value > 0)
            negatives = sum(o.value for o in self.options if o.value < 0)
            return negatives, positives
        if self.options:
            values = [o.value for o in self.options]
            return min(values), max(values)
        low = self.scale_min if self.scale_min is not None else 0.0
        high = self.scale_max if self.scale_max is not None else low
        return float(low), float(high)


@dataclass(frozen=True)
class RiskLevelDefinition:
    """
    Score band bound to a risk level.

    The band is the half-open interval [min_score, max_score); the
    highest band of an assessment is closed at max_score.
    """

    level: RiskLevel
    min_score: float
    max_score: float
    description: str = ""
    recommendations: tuple[str, ...] = ()
    crisis_resource_ids: tuple[str, ...] = ()
    professional_referral: bool = False
    follow_up_required: bool = False
    follow_up_timeframe_hours: Optional[int] = None

    def contains(self, score: float, closed_top: bool = False) -> bool:
        if closed_top:
            return self.min_score <= score <= self.max_score
        return self.min_score <= score < self.max_score

    def to_dict(self) -> dict:
        return {
            "level": self.level.slug,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "description": self.description,
            "recommendations": list(self.recommendations),
            "professional_referral": self.professional_referral,
            "follow_up_required": self.follow_up_required,
            "follow_up_timeframe_hours": self.follow_up_timeframe_hours,
        }


@dataclass(frozen=True)
class Assessment:
    """An assessment instrument with its scoring rules."""

    id: str
    title: str
    questions: tuple[AssessmentQuestion, ...]
    scoring_method: ScoringMethod
    risk_levels: tuple[RiskLevelDefinition, ...]
    type: str = "general_wellness"
    description: str = ""

    def question(self, question_id: str) -> Optional[AssessmentQuestion]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


@dataclass(frozen=True)
class QuestionResponse:
    """A submitted answer to one question."""

    question_id: str
    response_value: Optional[ResponseValue] = None
    response_text: Optional[str] = None

    @property
    def is_answered(self) -> bool:
        value = self.response_value
        if value is None:
            return bool(self.response_text and self.response_text.strip())
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, list):
            return len(value) > 0
        return True


@dataclass
class ClassificationResult:
    """
    Outcome of classifying one assessment submission.

    Attributes:
        score: Computed score (before clamping)
        risk_level: Level of the matched definition
        definition: Matched risk level definition
        clamped: Whether the score fell outside all definitions
        category_scores: Subtotals per category (category_sum only)
        indicators: Crisis indicators found in the responses
    """

    score: float
    risk_level: RiskLevel
    definition: RiskLevelDefinition
    clamped: bool = False
    category_scores: dict[str, float] = field(default_factory=dict)
    indicators: frozenset[str] = frozenset()

    @property
    def crisis_detected(self) -> bool:
        """High-or-above level, or any crisis indicator."""
        return self.risk_level >= RiskLevel.HIGH or bool(self.indicators)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "risk_level": self.risk_level.slug,
            "definition": self.definition.to_dict(),
            "clamped": self.clamped,
            "category_scores": dict(self.category_scores),
            "indicators": sorted(self.indicators),
            "crisis_detected": self.crisis_detected,
        }
