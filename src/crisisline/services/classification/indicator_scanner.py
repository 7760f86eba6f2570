"""
Crisis Indicator Scanner

Coarse keyword detection over message bodies, structured payloads
and assessment responses.

SAFETY-CRITICAL: Matching is permissive on purpose. A false positive
costs a human review; a false negative can cost a life. Do not make
this smarter without clinical sign-off.

ARCHITECTURE: The scan accepts a closed set of input types. Each
type has one serializer; anything else is a programming error and
raises TypeError.
"""

import json
from collections.abc import Mapping
from functools import singledispatch
from typing import Iterable, Optional

from crisisline.domain.models.assessment import QuestionResponse
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


# Canonical indicator -> lowercase phrases that signal it.
# CLINICAL_VALIDATION_REQUIRED
DEFAULT_INDICATOR_PHRASES: dict[str, tuple[str, ...]] = {
    "suicide": (
        "suicide",
        "suicidal",
        "kill myself",
        "end it all",
        "end my life",
        "want to die",
        "better off dead",
        "take my own life",
    ),
    "self_harm": (
        "self_harm",
        "self-harm",
        "self harm",
        "hurt myself",
        "harm myself",
        "cut myself",
        "cutting myself",
    ),
    "homicide": (
        "homicide",
        "homicidal",
        "kill someone",
        "kill them",
        "hurt someone",
    ),
    "psychosis": (
        "psychosis",
        "psychotic",
        "hearing voices",
        "voices tell me",
    ),
    "severe_depression": (
        "severe_depression",
        "severe depression",
        "hopeless",
        "no reason to live",
        "can't go on",
    ),
}


@singledispatch
def serialize_payload(payload: object) -> str:
    """
    Render a scan input as text.

    Raises:
        TypeError: If the payload type is not a supported scan input
    """
    raise TypeError(
        f"Unsupported crisis scan input: {type(payload).__name__}"
    )


@serialize_payload.register
def _(payload: str) -> str:
    return payload


@serialize_payload.register
def _(payload: Mapping) -> str:
    return json.dumps(payload, default=str, ensure_ascii=False, sort_keys=True)


@serialize_payload.register
def _(payload: QuestionResponse) -> str:
    value = payload.response_value
    parts: list[str] = []
    if isinstance(value, list):
        parts.extend(str(v) for v in value)
    elif value is not None:
        parts.append(str(value))
    if payload.response_text:
        parts.append(payload.response_text)
    return " ".join(parts)


@serialize_payload.register(list)
@serialize_payload.register(tuple)
def _(payload: list | tuple) -> str:
    return "\n".join(serialize_payload(item) for item in payload)


class IndicatorScanner:
    """
    Case-insensitive substring matcher for crisis indicators.

    Usage:
        scanner = IndicatorScanner()
        scanner.scan("I want to end it all")  # frozenset({"suicide"})
    """

    def __init__(
        self,
        extra_phrases: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        vocabulary = {k: list(v) for k, v in DEFAULT_INDICATOR_PHRASES.items()}
        for indicator, phrases in (extra_phrases or {}).items():
            vocabulary.setdefault(indicator, []).extend(phrases)

        self._vocabulary: dict[str, tuple[str, ...]] = {
            indicator: tuple(p.lower() for p in phrases if p.strip())
            for indicator, phrases in vocabulary.items()
        }

    @property
    def indicators(self) -> frozenset[str]:
        return frozenset(self._vocabulary)

    def scan(self, payload: object) -> frozenset[str]:
        """
        Find crisis indicators in a payload.

        Args:
            payload: Message body, mapping, QuestionResponse, or a
                list/tuple of those

        Returns:
            Matched canonical indicators (empty when nothing matched)

        Raises:
            TypeError: If the payload type is not supported
        """
        text = serialize_payload(payload).lower()
        matched = frozenset(
            indicator
            for indicator, phrases in self._vocabulary.items()
            if any(phrase in text for phrase in phrases)
        )

        if matched:
            logger.info(
                "Crisis indicators matched",
                indicators=sorted(matched),
            )
        return matched


_default_scanner = IndicatorScanner()


def scan_for_crisis_indicators(payload: object) -> frozenset[str]:
    """Scan a payload with the built-in vocabulary."""
    return _default_scanner.scan(payload)
