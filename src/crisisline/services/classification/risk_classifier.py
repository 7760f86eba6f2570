"""
Risk Classifier

Deterministic scoring of assessment responses into a risk level.

SAFETY-CRITICAL: Classification is a pure function of the assessment
definition and the submitted responses. Same input, same level.

CLINICAL_REVIEW_REQUIRED: Score bands come from the assessment
definition and must be validated per instrument.
"""

from collections import defaultdict
from typing import Optional, Sequence

from crisisline.domain.exceptions import (
    DefinitionError,
    IncompleteResponseError,
    ValidationError,
)
from crisisline.domain.models.assessment import (
    Assessment,
    AssessmentQuestion,
    ClassificationResult,
    QuestionResponse,
    QuestionType,
    RiskLevelDefinition,
    ScoringMethod,
)
from crisisline.services.classification.indicator_scanner import IndicatorScanner
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORY = "general"


def validate_definitions(
    definitions: Sequence[RiskLevelDefinition],
    score_range: Optional[tuple[float, float]] = None,
) -> tuple[RiskLevelDefinition, ...]:
    """
    Check the interval invariant for one assessment's definitions.

    Sorted by min_score, each band must end exactly where the next
    begins, and together they must cover score_range when given.

    Args:
        definitions: Risk level definitions of one assessment
        score_range: (lowest, highest) attainable score

    Returns:
        Definitions sorted by min_score

    Raises:
        DefinitionError: On empty, inverted, gapped, overlapping or
            non-covering definitions
    """
    if not definitions:
        raise DefinitionError("At least one risk level definition is required")

    ordered = tuple(sorted(definitions, key=lambda d: (d.min_score, d.max_score)))

    for definition in ordered:
        if definition.max_score <= definition.min_score:
            raise DefinitionError(
                f"Empty score band for {definition.level.slug}: "
                f"[{definition.min_score}, {definition.max_score})"
            )

    for current, following in zip(ordered, ordered[1:]):
        if current.max_score < following.min_score:
            raise DefinitionError(
                f"Gap between {current.level.slug} and {following.level.slug}: "
                f"{current.max_score} to {following.min_score}"
            )
        if current.max_score > following.min_score:
            raise DefinitionError(
                f"Overlap between {current.level.slug} and {following.level.slug}"
            )
        if following.level < current.level:
            raise DefinitionError(
                f"Risk levels must not decrease with score: "
                f"{following.level.slug} follows {current.level.slug}"
            )

    if score_range is not None:
        low, high = score_range
        if ordered[0].min_score > low or ordered[-1].max_score < high:
            raise DefinitionError(
                f"Definitions cover [{ordered[0].min_score}, {ordered[-1].max_score}] "
                f"but scores range over [{low}, {high}]"
            )

    return ordered


class RiskClassifier:
    """
    Assessment scoring and risk level classification.

    Scoring methods:
    - sum: total of answered values
    - average: mean over answered scored questions
    - weighted_sum: value x question weight
    - category_sum: subtotal per category; score is the highest subtotal

    Usage:
        classifier = RiskClassifier()
        result = classifier.classify_assessment(assessment, responses)
        if result.crisis_detected:
            ...
    """

    def __init__(self, scanner: Optional[IndicatorScanner] = None) -> None:
        self.scanner = scanner or IndicatorScanner()

    def compute_score(
        self,
        assessment: Assessment,
        responses: Sequence[QuestionResponse],
    ) -> tuple[float, dict[str, float]]:
        """
        Compute an assessment score.

        Returns:
            Tuple of (score, category subtotals). Subtotals are empty
            unless the scoring method is category_sum.

        Raises:
            IncompleteResponseError: If a required question is unanswered
            ValidationError: If a value cannot be read as a number
        """
        by_question = {r.question_id: r for r in responses if r.is_answered}

        missing = [
            q.id for q in assessment.questions
            if q.required and q.id not in by_question
        ]
        if missing:
            raise IncompleteResponseError(missing)

        values: list[tuple[AssessmentQuestion, float]] = []
        for question in assessment.questions:
            response = by_question.get(question.id)
            if response is None or not question.is_scored:
                continue
            values.append((question, self._coerce(question, response)))

        method = assessment.scoring_method
        if method == ScoringMethod.SUM:
            return sum(v for _, v in values), {}

        if method == ScoringMethod.AVERAGE:
            if not values:
                return 0.0, {}
            return sum(v for _, v in values) / len(values), {}

        if method == ScoringMethod.WEIGHTED_SUM:
            return sum(v * q.weight for q, v in values), {}

        if method == ScoringMethod.CATEGORY_SUM:
            subtotals: defaultdict[str, float] = defaultdict(float)
            for question, value in values:
                subtotals[question.category or DEFAULT_CATEGORY] += value
            score = max(subtotals.values()) if subtotals else 0.0
            return score, dict(subtotals)

        raise ValidationError(f"Unsupported scoring method: {method}")

    def score_range(self, assessment: Assessment) -> tuple[float, float]:
        """
        Lowest and highest attainable score for an assessment.

        Optional questions may be skipped, so they contribute 0 at
        either end of their bounds.
        """
        scored = [q for q in assessment.questions if q.is_scored]
        if not scored:
            return 0.0, 0.0

        def bounds(question: AssessmentQuestion, weight: float = 1.0) -> tuple[float, float]:
            low, high = question.value_bounds()
            low, high = sorted((low * weight, high * weight))
            if not question.required:
                low, high = min(low, 0.0), max(high, 0.0)
            return low, high

        method = assessment.scoring_method
        if method == ScoringMethod.AVERAGE:
            all_bounds = [q.value_bounds() for q in scored]
            return min(b[0] for b in all_bounds), max(b[1] for b in all_bounds)

        if method == ScoringMethod.CATEGORY_SUM:
            per_category: defaultdict[str, list[float]] = defaultdict(lambda: [0.0, 0.0])
            for question in scored:
                low, high = bounds(question)
                entry = per_category[question.category or DEFAULT_CATEGORY]
                entry[0] += low
                entry[1] += high
            return (
                max(low for low, _ in per_category.values()),
                max(high for _, high in per_category.values()),
            )

        use_weight = method == ScoringMethod.WEIGHTED_SUM
        lows, highs = zip(*(bounds(q, q.weight if use_weight else 1.0) for q in scored))
        return sum(lows), sum(highs)

    def classify_score(
        self,
        score: float,
        definitions: Sequence[RiskLevelDefinition],
    ) -> tuple[RiskLevelDefinition, bool]:
        """
        Find the definition whose band contains score.

        Scores outside every band are clamped to the nearest terminal
        definition and flagged.

        Returns:
            Tuple of (definition, clamped)

        Raises:
            DefinitionError: If the definitions are not contiguous
        """
        ordered = validate_definitions(definitions)
        lowest, highest = ordered[0], ordered[-1]

        for definition in ordered:
            if definition.contains(score, closed_top=definition is highest):
                return definition, False

        clamped_to = lowest if score < lowest.min_score else highest
        logger.warning(
            "Score outside risk level definitions, clamping",
            score=score,
            min_score=lowest.min_score,
            max_score=highest.max_score,
            clamped_to=clamped_to.level.slug,
        )
        return clamped_to, True

    def classify_assessment(
        self,
        assessment: Assessment,
        responses: Sequence[QuestionResponse],
    ) -> ClassificationResult:
        """
        Score, classify and scan one assessment submission.

        Raises:
            IncompleteResponseError: If a required question is unanswered
            ValidationError: On malformed values
            DefinitionError: If the assessment's definitions are invalid
        """
        validate_definitions(assessment.risk_levels, self.score_range(assessment))

        score, category_scores = self.compute_score(assessment, responses)
        definition, clamped = self.classify_score(score, assessment.risk_levels)
        indicators = self.scanner.scan(list(responses)) if responses else frozenset()

        result = ClassificationResult(
            score=score,
            risk_level=definition.level,
            definition=definition,
            clamped=clamped,
            category_scores=category_scores,
            indicators=indicators,
        )

        logger.info(
            "Assessment classified",
            assessment_id=assessment.id,
            scoring_method=assessment.scoring_method.value,
            score=round(score, 3),
            risk_level=definition.level.slug,
            clamped=clamped,
            indicator_count=len(indicators),
            crisis_detected=result.crisis_detected,
        )
        return result

    def _coerce(self, question: AssessmentQuestion, response: QuestionResponse) -> float:
        """Read a response as a number."""
        value = response.response_value
        if value is None:
            value = response.response_text

        if isinstance(value, bool):
            return 1.0 if value else 0.0

        if isinstance(value, (int, float)):
            return float(value)

        if isinstance(value, list):
            return sum(self._option_value(question, item) for item in value)

        if isinstance(value, str):
            text = value.strip()
            if question.options:
                return self._option_value(question, text)
            if question.question_type == QuestionType.BOOLEAN and text.lower() in ("yes", "true", "no", "false"):
                return 1.0 if text.lower() in ("yes", "true") else 0.0
            try:
                return float(text)
            except ValueError:
                pass

        raise ValidationError(
            f"Response to question {question.id} is not numeric: {value!r}"
        )

    @staticmethod
    def _option_value(question: AssessmentQuestion, selected: str) -> float:
        for option in question.options:
            if selected in (option.id, option.text):
                return float(option.value)
        try:
            return float(selected)
        except ValueError:
            raise ValidationError(
                f"Unknown option for question {question.id}: {selected!r}"
            ) from None
