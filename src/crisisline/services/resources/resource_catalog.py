"""
Resource Catalog

Ranked lookup of crisis resources dispatched by the escalation
engine. Read-mostly: built-in national resources, optionally replaced
by a JSON file at startup.

LEGAL_REVIEW_REQUIRED: Resource contact details must be verified
for accuracy in each jurisdiction before production use.
"""

import json
import os
from itertools import islice
from typing import Any, Iterable, Optional, Sequence

from crisisline.domain.exceptions import NotFoundError
from crisisline.domain.models.crisis_resource import (
    CoverageArea,
    CrisisResource,
    HoursOfOperation,
    ResourceFilter,
    ServiceType,
)
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)


# LEGAL_REVIEW_REQUIRED: Verify all numbers before production
BUILT_IN_RESOURCES: tuple[CrisisResource, ...] = (
    CrisisResource(
        id="988-lifeline",
        name="988 Suicide & Crisis Lifeline",
        organization="SAMHSA",
        phone="988",
        text="Text 988",
        website="https://988lifeline.org",
        service_types=(ServiceType.SUICIDE_PREVENTION, ServiceType.CRISIS_COUNSELING),
        languages=("English", "Spanish"),
        priority_level=1,
    ),
    CrisisResource(
        id="crisis-text-line",
        name="Crisis Text Line",
        organization="Crisis Text Line Inc.",
        phone="Text HOME to 741741",
        text="Text HOME to 741741",
        website="https://www.crisistextline.org",
        service_types=(ServiceType.CRISIS_COUNSELING, ServiceType.GENERAL_MENTAL_HEALTH),
        languages=("English", "Spanish"),
        priority_level=2,
    ),
    CrisisResource(
        id="trevor-project",
        name="The Trevor Project",
        organization="The Trevor Project",
        phone="1-866-488-7386",
        text="Text START to 678-678",
        website="https://www.thetrevorproject.org",
        service_types=(ServiceType.LGBTQ_SUPPORT, ServiceType.YOUTH_SERVICES),
        priority_level=2,
    ),
    CrisisResource(
        id="veterans-crisis-line",
        name="Veterans Crisis Line",
        organization="U.S. Department of Veterans Affairs",
        phone="988 then press 1",
        text="Text 838255",
        website="https://www.veteranscrisisline.net",
        service_types=(ServiceType.VETERANS_SERVICES, ServiceType.SUICIDE_PREVENTION),
        priority_level=2,
    ),
    CrisisResource(
        id="samhsa-helpline",
        name="SAMHSA National Helpline",
        organization="SAMHSA",
        phone="1-800-662-4357",
        website="https://www.samhsa.gov/find-help/national-helpline",
        service_types=(ServiceType.SUBSTANCE_ABUSE, ServiceType.GENERAL_MENTAL_HEALTH),
        languages=("English", "Spanish"),
        priority_level=3,
    ),
    CrisisResource(
        id="disaster-distress-helpline",
        name="Disaster Distress Helpline",
        organization="SAMHSA",
        phone="1-800-985-5990",
        text="Text TalkWithUs to 66746",
        website="https://www.samhsa.gov/find-help/disaster-distress-helpline",
        service_types=(ServiceType.DISASTER_RESPONSE, ServiceType.TRAUMA_SUPPORT),
        languages=("English", "Spanish"),
        priority_level=3,
    ),
)

EMERGENCY_PRIORITY_CUTOFF = 2


def resource_from_dict(data: dict[str, Any]) -> CrisisResource:
    """Build a CrisisResource from its JSON form."""
    hours = data.get("hours") or {}
    if isinstance(hours, str):
        hours = {"type": hours}
    coverage = data.get("coverage") or {}

    return CrisisResource(
        id=str(data["id"]),
        name=data["name"],
        phone=data["phone"],
        priority_level=int(data["priority_level"]),
        organization=data.get("organization", ""),
        text=data.get("text"),
        website=data.get("website", ""),
        service_types=tuple(ServiceType(s) for s in data.get("service_types", ())),
        hours=HoursOfOperation(**hours),
        languages=tuple(data.get("languages", ("English",))),
        coverage=CoverageArea(
            type=coverage.get("type", "national"),
            codes=tuple(coverage.get("codes", ("US",))),
        ),
        is_national=data.get("is_national", True),
        is_confidential=data.get("is_confidential", True),
        is_free=data.get("is_free", True),
    )


class ResourceCatalog:
    """
    Deterministic, side-effect-free resource ranking.

    Resources are ordered by priority_level ascending with id as the
    tie-break, so the same query always yields the same resources.

    Usage:
        catalog = ResourceCatalog()
        top = catalog.top_resources(2)
        body = catalog.format_for_sms(top)
    """

    def __init__(
        self,
        resources: Optional[Iterable[CrisisResource]] = None,
        config_path: Optional[str] = None,
    ) -> None:
        """
        Initialize the catalog.

        Args:
            resources: Explicit resources (defaults to the built-ins)
            config_path: Optional JSON file replacing the resources
        """
        loaded = list(resources if resources is not None else BUILT_IN_RESOURCES)

        if config_path and os.path.exists(config_path):
            loaded = self._load_config(config_path) or loaded

        self._resources: tuple[CrisisResource, ...] = tuple(
            sorted(loaded, key=lambda r: r.sort_key)
        )
        self._by_id = {r.id: r for r in self._resources}

    def _load_config(self, config_path: str) -> list[CrisisResource]:
        """Load resources from a JSON list (or {"resources": [...]})."""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)

            entries = data.get("resources", []) if isinstance(data, dict) else data
            resources = [resource_from_dict(entry) for entry in entries]

            logger.info(
                "Loaded crisis resources config",
                path=config_path,
                resource_count=len(resources),
            )
            return resources
        except (OSError, ValueError, KeyError, TypeError) as e:
            # Built-ins stay in place when the file is unusable
            logger.error(
                "Failed to load resources config, using built-in resources",
                path=config_path,
                error=str(e),
            )
            return []

    def __len__(self) -> int:
        return len(self._resources)

    def all(self) -> Sequence[CrisisResource]:
        return self._resources

    def get(self, resource_id: str) -> CrisisResource:
        """
        Get a resource by id.

        Raises:
            NotFoundError: If no resource has this id
        """
        resource = self._by_id.get(resource_id)
        if resource is None:
            raise NotFoundError("CrisisResource", resource_id)
        return resource

    def top_resources(
        self,
        n: int,
        resource_filter: Optional[ResourceFilter] = None,
    ) -> list[CrisisResource]:
        """
        Up to n resources in priority order.

        Args:
            n: Maximum number of resources
            resource_filter: Predicate applied before ranking

        Returns:
            Ordered resources (fewer than n when the filter excludes some)
        """
        if n <= 0:
            return []
        matching = (
            r for r in self._resources
            if resource_filter is None or resource_filter.matches(r)
        )
        return list(islice(matching, n))

    def emergency_contacts(self) -> list[CrisisResource]:
        """Highest-priority resources shown for emergencies."""
        return [
            r for r in self._resources
            if r.priority_level <= EMERGENCY_PRIORITY_CUTOFF
        ]

    @staticmethod
    def format_for_sms(resources: Sequence[CrisisResource]) -> str:
        """
        Format resources as an SMS body.

        Returns:
            One line per resource, or an empty string for no resources
        """
        if not resources:
            return ""
        lines = ["Crisis support available now:"]
        lines.extend(r.format_for_sms() for r in resources)
        return "\n".join(lines)
