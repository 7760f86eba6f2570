"""
Health Check Endpoints

Provides system health and readiness endpoints for:
- Load balancer health checks
- Kubernetes probes
- Monitoring systems
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from crisisline import __version__
from crisisline.api.dependencies import get_container
from crisisline.services.container import ServiceContainer

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness check response with component health."""

    ready: bool
    components: dict


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check",
    description="Basic health check endpoint for load balancers",
)
async def health_check(
    container: ServiceContainer = Depends(get_container),
) -> HealthResponse:
    """Returns 200 if the application is running."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=container.settings.env,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Readiness check including the carrier and storage",
)
async def readiness_check(
    container: ServiceContainer = Depends(get_container),
) -> ReadinessResponse:
    """
    Checks the components a crisis response depends on:
    - SMS carrier
    - Database (when storage_backend is "database")
    - Resource catalog is non-empty
    """
    components = {
        "carrier": await container.gateway.health_check(),
        "resources": len(container.catalog) > 0,
    }
    if container.database is not None:
        components["database"] = await container.database.health_check()

    return ReadinessResponse(
        ready=all(components.values()),
        components=components,
    )


@router.get(
    "/live",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Kubernetes liveness probe endpoint",
)
async def liveness_check(
    container: ServiceContainer = Depends(get_container),
) -> HealthResponse:
    """Returns 200 if the application process is alive."""
    return HealthResponse(
        status="alive",
        version=__version__,
        environment=container.settings.env,
    )
