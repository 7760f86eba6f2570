"""Risk classification services."""

from crisisline.services.classification.indicator_scanner import (
    DEFAULT_INDICATOR_PHRASES,
    IndicatorScanner,
    scan_for_crisis_indicators,
    serialize_payload,
)
from crisisline.services.classification.risk_classifier import (
    RiskClassifier,
    validate_definitions,
)

__all__ = [
    "DEFAULT_INDICATOR_PHRASES",
    "IndicatorScanner",
    "scan_for_crisis_indicators",
    "serialize_payload",
    "RiskClassifier",
    "validate_definitions",
]
