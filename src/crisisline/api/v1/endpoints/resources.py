"""
Crisis Resource Endpoints

Read-only access to the resource catalog.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from crisisline.api.dependencies import get_container, ok
from crisisline.domain.exceptions import ValidationError
from crisisline.domain.models.crisis_resource import ResourceFilter, ServiceType
from crisisline.services.container import ServiceContainer

router = APIRouter()


@router.get("", summary="Top crisis resources")
async def list_resources(
    limit: int = Query(5, ge=1, le=50),
    service_type: Optional[str] = Query(None),
    coverage: Optional[str] = Query(None, description="Coverage code, e.g. US or CA"),
    language: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    try:
        wanted_type = ServiceType(service_type) if service_type else None
    except ValueError:
        raise ValidationError(f"Unknown service type: {service_type}") from None

    resource_filter = ResourceFilter(
        service_type=wanted_type,
        coverage_code=coverage,
        language=language,
    )
    resources = container.catalog.top_resources(limit, resource_filter)
    return ok([r.to_dict() for r in resources])


@router.get("/emergency", summary="Emergency contacts")
async def emergency_contacts(
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok([r.to_dict() for r in container.catalog.emergency_contacts()])


@router.get("/{resource_id}", summary="Get a crisis resource")
async def get_resource(
    resource_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    return ok(container.catalog.get(resource_id).to_dict())
