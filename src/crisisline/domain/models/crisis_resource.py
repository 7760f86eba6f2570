"""
Crisis Resource Models

Hotlines, text lines and services that can be dispatched to a
person at risk. Resources are ranked by priority_level (lower is
more important) with id as the tie-break.

LEGAL_REVIEW_REQUIRED: Contact details must be verified for
accuracy in each jurisdiction.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional


class ServiceType(StrEnum):
    """Kinds of support a resource provides."""

    SUICIDE_PREVENTION = "suicide_prevention"
    CRISIS_COUNSELING = "crisis_counseling"
    TRAUMA_SUPPORT = "trauma_support"
    SUBSTANCE_ABUSE = "substance_abuse"
    DOMESTIC_VIOLENCE = "domestic_violence"
    YOUTH_SERVICES = "youth_services"
    LGBTQ_SUPPORT = "lgbtq_support"
    VETERANS_SERVICES = "veterans_services"
    DISASTER_RESPONSE = "disaster_response"
    GENERAL_MENTAL_HEALTH = "general_mental_health"


@dataclass(frozen=True)
class CoverageArea:
    """Geographic coverage, e.g. national/US or state/CA,NV."""

    type: str = "national"
    codes: tuple[str, ...] = ("US",)

    def covers(self, code: str) -> bool:
        return code.upper() in {c.upper() for c in self.codes}


@dataclass(frozen=True)
class HoursOfOperation:
    type: str = "24_7"  # 24_7, business_hours, weekends_only, specific_hours
    timezone: str = "America/New_York"

    @property
    def always_open(self) -> bool:
        return self.type == "24_7"


@dataclass(frozen=True)
class CrisisResource:
    """
    A single crisis resource.

    Attributes:
        id: Stable identifier (tie-break for equal priority)
        name: Resource name (e.g., "988 Suicide & Crisis Lifeline")
        phone: Voice contact
        text: Text-line instructions (e.g., "Text HOME to 741741")
        service_types: Services offered
        languages: Supported languages
        priority_level: Ranking, lower means higher priority
    """

    id: str
    name: str
    phone: str
    priority_level: int
    organization: str = ""
    text: Optional[str] = None
    website: str = ""
    service_types: tuple[ServiceType, ...] = ()
    hours: HoursOfOperation = field(default_factory=HoursOfOperation)
    languages: tuple[str, ...] = ("English",)
    coverage: CoverageArea = field(default_factory=CoverageArea)
    is_national: bool = True
    is_confidential: bool = True
    is_free: bool = True

    @property
    def sort_key(self) -> tuple[int, str]:
        return self.priority_level, self.id

    def format_for_sms(self) -> str:
        """Compact single-line form for an SMS body."""
        parts = [f"{self.name}: {self.phone}"]
        if self.text and self.text != self.phone:
            parts.append(self.text)
        if self.hours.always_open:
            parts.append("(24/7)")
        return " ".join(parts)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "organization": self.organization,
            "phone": self.phone,
            "text": self.text,
            "website": self.website,
            "service_types": [s.value for s in self.service_types],
            "hours": self.hours.type,
            "languages": list(self.languages),
            "coverage": {"type": self.coverage.type, "codes": list(self.coverage.codes)},
            "priority_level": self.priority_level,
            "is_national": self.is_national,
            "is_confidential": self.is_confidential,
        }


@dataclass(frozen=True)
class ResourceFilter:
    """
    Pure predicate over resources.

    Unset fields match everything. Language matching is
    case-insensitive.
    """

    service_type: Optional[ServiceType] = None
    coverage_code: Optional[str] = None
    language: Optional[str] = None

    def matches(self, resource: CrisisResource) -> bool:
        if self.service_type and self.service_type not in resource.service_types:
            return False
        if self.coverage_code and not resource.coverage.covers(self.coverage_code):
            return False
        if self.language:
            wanted = self.language.lower()
            if wanted not in {lang.lower() for lang in resource.languages}:
                return False
        return True
