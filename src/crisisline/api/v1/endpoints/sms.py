"""
SMS Endpoints

Carrier webhooks (inbound messages, delivery status), outbound
sends, per-address history and explicit crisis alerts.

SAFETY-CRITICAL: The inbound webhook runs crisis escalation before
it responds, so the auto-reply is already on its way when the
carrier receives the 200.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from crisisline.api.dependencies import get_container, ok
from crisisline.domain.enums import RiskLevel, RiskSource
from crisisline.domain.exceptions import NotFoundError, ValidationError
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.services.container import ServiceContainer
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter()


# Request Models
# Fields are optional so missing values produce the documented
# 400 message rather than a generic validation error.

class IncomingSMSRequest(BaseModel):
    """Carrier webhook for an inbound SMS."""

    model_config = ConfigDict(populate_by_name=True)

    from_address: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    message: Optional[str] = None
    timestamp: Optional[datetime] = None


class StatusUpdateRequest(BaseModel):
    """Carrier webhook for a delivery-status change."""

    messageId: Optional[str] = None
    status: Optional[str] = None
    timestamp: Optional[datetime] = None


class SendSMSRequest(BaseModel):
    to: Optional[str] = None
    message: Optional[str] = None
    crisisDetected: bool = False


class CrisisAlertRequest(BaseModel):
    """Explicit crisis alert for a phone number."""

    phoneNumber: Optional[str] = None
    message: Optional[str] = None
    severity: str = "high"


# Endpoints

@router.post(
    "/incoming",
    summary="Inbound SMS webhook",
)
async def incoming_sms(
    request: IncomingSMSRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    result = await container.gateway.receive_inbound(
        request.from_address,
        request.to,
        request.message,
        request.timestamp,
    )
    return ok(result.to_dict(), message="Message processed successfully")


@router.post(
    "/status",
    summary="Delivery status webhook",
)
async def status_update(
    request: StatusUpdateRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """
    Apply a carrier status update.

    Updates for unknown message ids are acknowledged and dropped
    unless the unknown_status_policy is "reject" (404).
    """
    try:
        message = await container.gateway.receive_status_update(
            request.messageId,
            request.status,
            request.timestamp,
        )
    except NotFoundError:
        if container.settings.escalation.unknown_status_policy == "reject":
            raise
        logger.warning(
            "Status update for unknown message ignored",
            external_message_id=request.messageId,
            status=request.status,
        )
        return ok(message="Status update ignored for unknown message")

    return ok(
        {"id": message.id, "status": message.status.value},
        message="Status updated successfully",
    )


@router.post(
    "/send",
    summary="Send an SMS",
)
async def send_sms(
    request: SendSMSRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    if not request.to or not request.message:
        raise ValidationError("Missing required fields: to, message")

    message = await container.gateway.send(
        request.to,
        request.message,
        crisis_flag=request.crisisDetected,
    )
    return ok(message.to_dict())


@router.get(
    "/history",
    summary="Message history for a phone number",
)
async def message_history(
    phone_number: Optional[str] = Query(None, alias="phoneNumber"),
    container: ServiceContainer = Depends(get_container),
) -> dict:
    history = await container.gateway.get_history(phone_number)
    return ok([m.to_dict() for m in history])


@router.post(
    "/messages/{message_id}/refresh",
    summary="Poll the carrier for a message's status",
)
async def refresh_message_status(
    message_id: str,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    message = await container.gateway.refresh_status(message_id)
    return ok(message.to_dict())


@router.post(
    "/crisis-alert",
    summary="Raise a crisis alert",
)
async def crisis_alert(
    request: CrisisAlertRequest,
    container: ServiceContainer = Depends(get_container),
) -> dict:
    """
    Escalate a phone number directly.

    The subject always receives the auto-reply and at least one
    crisis resource, whatever the severity.
    """
    if not request.phoneNumber or not request.message:
        raise ValidationError("Missing required fields: phoneNumber, message")

    try:
        severity = RiskLevel.parse(request.severity)
    except ValueError:
        raise ValidationError(f"Invalid severity: {request.severity}") from None

    indicators = container.scanner.scan(request.message)
    event = RiskEvent.detected(
        source_type=RiskSource.MANUAL,
        subject_id=request.phoneNumber,
        raw_score=float(len(indicators)),
        risk_level=severity,
        indicators=indicators,
        indicator_level=container.indicator_level,
        reply_address=request.phoneNumber,
    )
    record = await container.engine.handle(event)

    return ok(record.to_dict(), message="Crisis alert created and response sent")
