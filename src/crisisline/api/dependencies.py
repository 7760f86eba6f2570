"""
API Dependencies

Request-scoped access to the service container and the response
envelope shared by all endpoints.
"""

from typing import Any, Optional

from fastapi import Request

from crisisline.domain.exceptions import InternalError
from crisisline.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """
    FastAPI dependency returning the application's services.

    Usage in endpoint:
        @router.post("/send")
        async def send(container: ServiceContainer = Depends(get_container)):
            ...
    """
    container: Optional[ServiceContainer] = getattr(request.app.state, "container", None)
    if container is None:
        raise InternalError("Service container not initialized")
    return container


def ok(data: Any = None, message: Optional[str] = None) -> dict:
    """Success envelope."""
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return body
