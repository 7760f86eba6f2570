"""
Unit Tests for Risk Classifier

Tests scoring methods, band validation and score classification.
"""

import pytest

from crisisline.domain.enums import RiskLevel
from crisisline.domain.exceptions import (
    DefinitionError,
    IncompleteResponseError,
    ValidationError,
)
from crisisline.domain.models.assessment import (
    Assessment,
    AssessmentQuestion,
    QuestionOption,
    QuestionResponse,
    QuestionType,
    RiskLevelDefinition,
    ScoringMethod,
)
from crisisline.services.classification import RiskClassifier, validate_definitions


def answers(**values: object) -> list[QuestionResponse]:
    return [QuestionResponse(qid, value) for qid, value in values.items()]


class TestValidateDefinitions:
    """Test suite for the risk band invariant."""

    def test_contiguous_bands_sorted(self) -> None:
        """Test that valid bands come back ordered by min_score."""
        ordered = validate_definitions([
            RiskLevelDefinition(RiskLevel.HIGH, 8, 12),
            RiskLevelDefinition(RiskLevel.NO_RISK, 0, 4),
            RiskLevelDefinition(RiskLevel.MODERATE, 4, 8),
        ])

        assert [d.level for d in ordered] == [
            RiskLevel.NO_RISK,
            RiskLevel.MODERATE,
            RiskLevel.HIGH,
        ]

    def test_empty_definitions_rejected(self) -> None:
        with pytest.raises(DefinitionError):
            validate_definitions([])

    def test_gap_rejected(self) -> None:
        """Test that a gap between bands is a definition error."""
        with pytest.raises(DefinitionError, match="Gap"):
            validate_definitions([
                RiskLevelDefinition(RiskLevel.LOW, 0, 4),
                RiskLevelDefinition(RiskLevel.HIGH, 5, 10),
            ])

    def test_overlap_rejected(self) -> None:
        """Test that overlapping bands are a definition error."""
        with pytest.raises(DefinitionError, match="Overlap"):
            validate_definitions([
                RiskLevelDefinition(RiskLevel.LOW, 0, 6),
                RiskLevelDefinition(RiskLevel.HIGH, 5, 10),
            ])

    def test_decreasing_levels_rejected(self) -> None:
        """Test that a higher score may not map to a lower level."""
        with pytest.raises(DefinitionError):
            validate_definitions([
                RiskLevelDefinition(RiskLevel.HIGH, 0, 5),
                RiskLevelDefinition(RiskLevel.LOW, 5, 10),
            ])

    def test_inverted_band_rejected(self) -> None:
        with pytest.raises(DefinitionError):
            validate_definitions([RiskLevelDefinition(RiskLevel.LOW, 5, 5)])

    def test_must_cover_score_range(self) -> None:
        """Test that bands must span every attainable score."""
        with pytest.raises(DefinitionError):
            validate_definitions(
                [RiskLevelDefinition(RiskLevel.LOW, 0, 8)],
                score_range=(0, 12),
            )


class TestComputeScore:
    """Test suite for scoring methods."""

    @pytest.fixture
    def classifier(self) -> RiskClassifier:
        return RiskClassifier()

    def _assessment(self, method: ScoringMethod, *questions: AssessmentQuestion) -> Assessment:
        return Assessment(
            id="a1",
            title="Test",
            scoring_method=method,
            questions=questions,
            risk_levels=(RiskLevelDefinition(RiskLevel.NO_RISK, 0, 100),),
        )

    def test_sum(self, classifier: RiskClassifier) -> None:
        assessment = self._assessment(
            ScoringMethod.SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4),
            AssessmentQuestion("q2", scale_min=0, scale_max=4),
        )

        score, categories = classifier.compute_score(assessment, answers(q1=3, q2=2))

        assert score == 5
        assert categories == {}

    def test_average_skips_unanswered_optional(self, classifier: RiskClassifier) -> None:
        """Test that average divides by answered scored questions only."""
        assessment = self._assessment(
            ScoringMethod.AVERAGE,
            AssessmentQuestion("q1", scale_min=0, scale_max=4),
            AssessmentQuestion("q2", scale_min=0, scale_max=4),
            AssessmentQuestion("q3", scale_min=0, scale_max=4, required=False),
        )

        score, _ = classifier.compute_score(assessment, answers(q1=4, q2=2))

        assert score == 3

    def test_weighted_sum(self, classifier: RiskClassifier) -> None:
        assessment = self._assessment(
            ScoringMethod.WEIGHTED_SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4, weight=2.0),
            AssessmentQuestion("q2", scale_min=0, scale_max=4, weight=0.5),
        )

        score, _ = classifier.compute_score(assessment, answers(q1=3, q2=2))

        assert score == 7

    def test_category_sum_takes_highest_subtotal(self, classifier: RiskClassifier) -> None:
        """Test that category_sum reports subtotals and scores the maximum."""
        assessment = self._assessment(
            ScoringMethod.CATEGORY_SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4, category="anxiety"),
            AssessmentQuestion("q2", scale_min=0, scale_max=4, category="anxiety"),
            AssessmentQuestion("q3", scale_min=0, scale_max=4, category="mood"),
        )

        score, categories = classifier.compute_score(assessment, answers(q1=1, q2=2, q3=4))

        assert score == 4
        assert categories == {"anxiety": 3, "mood": 4}

    def test_missing_required_answer(self, classifier: RiskClassifier) -> None:
        """Test that unanswered required questions are reported by id."""
        assessment = self._assessment(
            ScoringMethod.SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4),
            AssessmentQuestion("q2", scale_min=0, scale_max=4),
        )

        with pytest.raises(IncompleteResponseError) as exc_info:
            classifier.compute_score(assessment, answers(q1=1, q2="  "))

        assert exc_info.value.missing_question_ids == ["q2"]

    def test_option_answers(self, classifier: RiskClassifier) -> None:
        """Test that options resolve by id or text and checkboxes add up."""
        options = (
            QuestionOption("never", "Never", 0),
            QuestionOption("often", "Often", 2),
            QuestionOption("always", "Always", 3),
        )
        assessment = self._assessment(
            ScoringMethod.SUM,
            AssessmentQuestion("q1", question_type=QuestionType.MULTIPLE_CHOICE, options=options),
            AssessmentQuestion("q2", question_type=QuestionType.CHECKBOX, options=options),
            AssessmentQuestion("q3", question_type=QuestionType.BOOLEAN),
        )

        score, _ = classifier.compute_score(
            assessment,
            answers(q1="Often", q2=["often", "always"], q3="yes"),
        )

        assert score == 2 + 5 + 1

    def test_text_questions_not_scored(self, classifier: RiskClassifier) -> None:
        assessment = self._assessment(
            ScoringMethod.SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4),
            AssessmentQuestion("notes", question_type=QuestionType.TEXT, required=False),
        )

        score, _ = classifier.compute_score(
            assessment,
            [QuestionResponse("q1", 2), QuestionResponse("notes", response_text="rough week")],
        )

        assert score == 2

    def test_non_numeric_answer_rejected(self, classifier: RiskClassifier) -> None:
        assessment = self._assessment(
            ScoringMethod.SUM,
            AssessmentQuestion("q1", scale_min=0, scale_max=4),
        )

        with pytest.raises(ValidationError):
            classifier.compute_score(assessment, answers(q1="sometimes"))


class TestClassification:
    """Test suite for score classification."""

    @pytest.fixture
    def classifier(self) -> RiskClassifier:
        return RiskClassifier()

    def test_score_lands_in_high_band(
        self,
        classifier: RiskClassifier,
        three_question_assessment: Assessment,
    ) -> None:
        """Test three answers of 3 summing to 9 classify as HIGH."""
        result = classifier.classify_assessment(
            three_question_assessment,
            answers(q1=3, q2=3, q3=3),
        )

        assert result.score == 9
        assert result.risk_level == RiskLevel.HIGH
        assert not result.clamped
        assert result.crisis_detected

    def test_band_lower_bound_inclusive(self, classifier: RiskClassifier) -> None:
        """Test that a score equal to a band's min belongs to that band."""
        definitions = (
            RiskLevelDefinition(RiskLevel.LOW, 0, 5),
            RiskLevelDefinition(RiskLevel.HIGH, 5, 10),
        )

        definition, clamped = classifier.classify_score(5, definitions)

        assert definition.level == RiskLevel.HIGH
        assert not clamped

    def test_top_band_closed(self, classifier: RiskClassifier) -> None:
        """Test that the maximum score classifies into the top band."""
        definitions = (
            RiskLevelDefinition(RiskLevel.LOW, 0, 5),
            RiskLevelDefinition(RiskLevel.HIGH, 5, 10),
        )

        definition, clamped = classifier.classify_score(10, definitions)

        assert definition.level == RiskLevel.HIGH
        assert not clamped

    @pytest.mark.parametrize(
        "score,expected",
        [(-1, RiskLevel.LOW), (25, RiskLevel.HIGH)],
    )
    def test_out_of_range_clamped(
        self,
        classifier: RiskClassifier,
        score: float,
        expected: RiskLevel,
    ) -> None:
        """Test that out-of-range scores clamp to the nearest band and are flagged."""
        definitions = (
            RiskLevelDefinition(RiskLevel.LOW, 0, 5),
            RiskLevelDefinition(RiskLevel.HIGH, 5, 10),
        )

        definition, clamped = classifier.classify_score(score, definitions)

        assert definition.level == expected
        assert clamped

    def test_deterministic(
        self,
        classifier: RiskClassifier,
        three_question_assessment: Assessment,
    ) -> None:
        responses = answers(q1=1, q2=2, q3=0)

        first = classifier.classify_assessment(three_question_assessment, responses)
        second = classifier.classify_assessment(three_question_assessment, responses)

        assert first.to_dict() == second.to_dict()
        assert first.risk_level == RiskLevel.LOW

    def test_monotonic_across_scores(
        self,
        classifier: RiskClassifier,
        three_question_assessment: Assessment,
    ) -> None:
        """Test that a higher score never yields a lower risk level, clamped ends included."""
        definitions = three_question_assessment.risk_levels
        scores = [s / 4 for s in range(-12, 61)]  # -3.0 .. 15.0

        classified = [classifier.classify_score(s, definitions) for s in scores]
        levels = [definition.level for definition, _ in classified]

        assert all(lower <= higher for lower, higher in zip(levels, levels[1:]))
        assert levels[0] == RiskLevel.NO_RISK
        assert levels[-1] == RiskLevel.HIGH
        assert classified[0][1] and classified[-1][1]
        assert not any(clamped for s, (_, clamped) in zip(scores, classified) if 0 <= s <= 12)

    def test_monotonic_across_answers(
        self,
        classifier: RiskClassifier,
        three_question_assessment: Assessment,
    ) -> None:
        """Test monotonicity over every attainable answer combination."""
        results = [
            classifier.classify_assessment(three_question_assessment, answers(q1=a, q2=b, q3=c))
            for a in range(5)
            for b in range(5)
            for c in range(5)
        ]
        results.sort(key=lambda r: r.score)

        for lower, higher in zip(results, results[1:]):
            if lower.score < higher.score:
                assert lower.risk_level <= higher.risk_level
            else:
                assert lower.risk_level == higher.risk_level

    def test_incomplete_coverage_rejected(self, classifier: RiskClassifier) -> None:
        """Test that bands not covering the attainable range are refused."""
        assessment = Assessment(
            id="a1",
            title="Test",
            scoring_method=ScoringMethod.SUM,
            questions=(AssessmentQuestion("q1", scale_min=0, scale_max=10),),
            risk_levels=(RiskLevelDefinition(RiskLevel.LOW, 0, 5),),
        )

        with pytest.raises(DefinitionError):
            classifier.classify_assessment(assessment, answers(q1=3))

    def test_indicators_in_text_answers(self, classifier: RiskClassifier) -> None:
        """Test that free-text answers are scanned for crisis indicators."""
        assessment = Assessment(
            id="a1",
            title="Test",
            scoring_method=ScoringMethod.SUM,
            questions=(
                AssessmentQuestion("q1", scale_min=0, scale_max=4),
                AssessmentQuestion("notes", question_type=QuestionType.TEXT, required=False),
            ),
            risk_levels=(RiskLevelDefinition(RiskLevel.NO_RISK, 0, 4),),
        )

        result = classifier.classify_assessment(
            assessment,
            [QuestionResponse("q1", 0), QuestionResponse("notes", response_text="I feel hopeless")],
        )

        assert result.risk_level == RiskLevel.NO_RISK
        assert result.indicators == frozenset({"severe_depression"})
        assert result.crisis_detected
