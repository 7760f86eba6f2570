"""
Escalation Endpoints

Escalation status lookups and responder acknowledgments.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crisisline.api.dependencies import get_container, ok
from crisisline.services.container import ServiceContainer

router = APIRouter()


class AcknowledgeRequest(BaseModel):
    responder_id: str = Field(..., min_length=1, description="Acknowledging responder")


@router.get("/{escalation_id}", summary="Get an escalation")
async def get_escalation(
    escalation_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    record = await container.engine.get(escalation_id)
    return ok(record.to_dict())


@router.post("/{escalation_id}/acknowledge", summary="Acknowledge an escalation")
async def acknowledge_escalation(
    escalation_id: str,
    request: AcknowledgeRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """
    Record that a responder has taken over.

    Repeated acknowledgments return the record unchanged; timed-out
    escalations answer 409.
    """
    record = await container.engine.acknowledge(escalation_id, request.responder_id)
    return ok(record.to_dict())
