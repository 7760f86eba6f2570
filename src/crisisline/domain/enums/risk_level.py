"""
Risk Level and Risk Source Enumerations

Defines the ordered severity classification produced by the risk
classifier and consumed by the escalation engine.

CLINICAL_REVIEW_REQUIRED: Level semantics and the actions bound to
them should be validated by mental health professionals.
"""

from enum import IntEnum, StrEnum


class RiskLevel(IntEnum):
    """
    Ordered risk classification.

    Higher values indicate higher risk. Comparisons between levels
    are meaningful (RiskLevel.HIGH > RiskLevel.MODERATE).
    """

    NO_RISK = 0
    """No risk indicated by the assessment."""

    LOW = 1
    """Low risk - self-care resources are appropriate."""

    MODERATE = 2
    """Moderate risk - share a support resource."""

    HIGH = 3
    """
    High risk - crisis detected.
    - Share the top crisis resource
    - Notify a responder
    """

    SEVERE = 4
    """Severe risk - handled like CRISIS by the escalation engine."""

    CRISIS = 5
    """
    Active crisis.
    - Immediate auto-reply
    - Top crisis resources
    - Responder notification

    SAFETY_NOTE: The subject must always receive the immediate
    acknowledgment before any other action is attempted.
    """

    @property
    def slug(self) -> str:
        """Wire name used by assessments and the API."""
        return _SLUGS[self]

    @classmethod
    def parse(cls, value: "str | int | RiskLevel") -> "RiskLevel":
        """
        Parse a level from its slug, name, short name or integer value.

        Accepts "high_risk", "HIGH", "high" and 3 alike.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, int):
            return cls(value)

        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        for level, slug in _SLUGS.items():
            if key in (slug, level.name.lower()):
                return level
        if key == "none":
            return cls.NO_RISK
        raise ValueError(f"Unknown risk level: {value!r}")


_SLUGS: dict[RiskLevel, str] = {
    RiskLevel.NO_RISK: "no_risk",
    RiskLevel.LOW: "low_risk",
    RiskLevel.MODERATE: "moderate_risk",
    RiskLevel.HIGH: "high_risk",
    RiskLevel.SEVERE: "severe_risk",
    RiskLevel.CRISIS: "crisis",
}


class RiskSource(StrEnum):
    """Where a risk event originated."""

    ASSESSMENT = "assessment"
    """Submitted assessment answers (in-session)."""

    MESSAGE = "message"
    """Inbound SMS content."""

    MANUAL = "manual"
    """Explicit crisis alert raised through the API."""
