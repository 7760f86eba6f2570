"""
Messaging Gateway

Owns every Message: outbound sends through the carrier, inbound
webhook intake with crisis scanning, and delivery-status
reconciliation.

SAFETY-CRITICAL: send() never raises for carrier problems. Callers
inspect the returned Message.status; a failed auto-reply must not
stop the rest of a crisis response.

ARCHITECTURE: Status updates for one external message id are
serialized; updates for different ids run concurrently. Status only
ever moves forward, so duplicated or reordered carrier webhooks are
harmless.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from crisisline.domain.enums import MessageDirection, MessageStatus, RiskLevel, RiskSource
from crisisline.domain.exceptions import CarrierError, NotFoundError, ValidationError
from crisisline.domain.models.message import Message
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.concurrency import KeyedLock
from crisisline.infrastructure.metrics import (
    track_carrier_latency,
    track_message,
    track_status_update,
)
from crisisline.infrastructure.storage.base import MessageRepository
from crisisline.services.classification.indicator_scanner import IndicatorScanner
from crisisline.services.messaging.carrier import CarrierClient
from crisisline.config.logging_config import get_logger

logger = get_logger(__name__)

EscalationHandler = Callable[[RiskEvent], Awaitable[Any]]
DeliveryListener = Callable[[Message], Awaitable[None]]


@dataclass
class InboundResult:
    """
    Outcome of processing one inbound SMS.

    Attributes:
        message: Stored inbound message
        indicators: Crisis indicators matched in the body
        risk_event: Event handed to escalation, when indicators matched
        escalation: Whatever the escalation handler returned
    """

    message: Message
    indicators: frozenset[str] = frozenset()
    risk_event: Optional[RiskEvent] = None
    escalation: Any = None

    @property
    def crisis_detected(self) -> bool:
        return bool(self.indicators)

    def to_dict(self) -> dict:
        return {
            "message_id": self.message.id,
            "crisis_detected": self.crisis_detected,
            "indicators": sorted(self.indicators),
            "risk_event_id": self.risk_event.id if self.risk_event else None,
        }


class MessagingGateway:
    """
    SMS send/receive and delivery-status reconciliation.

    The escalation handler and delivery listeners are attached after
    construction because the escalation engine itself sends through
    this gateway.

    Usage:
        gateway = MessagingGateway(repository, carrier, originator="+10000000000")
        gateway.set_escalation_handler(engine.handle)
        gateway.add_delivery_listener(engine.on_message_delivered)
        message = await gateway.send("+15551234567", "Hello")
    """

    def __init__(
        self,
        repository: MessageRepository,
        carrier: CarrierClient,
        originator: str,
        send_timeout_seconds: float = 10.0,
        scanner: Optional[IndicatorScanner] = None,
        indicator_level: RiskLevel = RiskLevel.CRISIS,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            repository: Message storage
            carrier: SMS carrier client
            originator: Our sender address
            send_timeout_seconds: Upper bound for one carrier send
            scanner: Crisis indicator scanner for inbound bodies
            indicator_level: Risk level of events raised by inbound matches
        """
        self._repository = repository
        self._carrier = carrier
        self._originator = originator
        self._send_timeout = send_timeout_seconds
        self._scanner = scanner or IndicatorScanner()
        self._indicator_level = indicator_level

        self._status_locks = KeyedLock()
        self._escalation_handler: Optional[EscalationHandler] = None
        self._delivery_listeners: list[DeliveryListener] = []

    def set_escalation_handler(self, handler: EscalationHandler) -> None:
        self._escalation_handler = handler

    def add_delivery_listener(self, listener: DeliveryListener) -> None:
        self._delivery_listeners.append(listener)

    async def send(
        self,
        to_address: str,
        body: str,
        crisis_flag: bool = False,
        escalation_id: Optional[str] = None,
    ) -> Message:
        """
        Send one SMS.

        The message is stored as queued, submitted to the carrier once,
        and stored again as sent (with the carrier id) or failed (with
        the reason).

        Args:
            to_address: Recipient address
            body: Message text
            crisis_flag: Whether this is part of a crisis response
            escalation_id: Escalation the message belongs to

        Returns:
            The stored Message

        Raises:
            ValidationError: If to_address or body is empty
        """
        if not to_address or not to_address.strip():
            raise ValidationError("Recipient address is required")
        if not body or not body.strip():
            raise ValidationError("Message body is required")

        message = Message(
            direction=MessageDirection.OUTBOUND,
            counterparty_address=to_address.strip(),
            body=body,
            crisis_flag=crisis_flag,
            local_address=self._originator,
            escalation_id=escalation_id,
        )
        await self._repository.add(message)

        start_time = time.monotonic()
        try:
            receipt = await asyncio.wait_for(
                self._carrier.send(message.counterparty_address, body, self._originator),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError:
            message.mark_failed(f"Carrier did not respond within {self._send_timeout:g}s")
            outcome = "timeout"
        except CarrierError as e:
            message.mark_failed(e.message)
            outcome = "rejected" if not e.is_retryable else "error"
        except Exception:
            logger.exception(
                "Carrier client raised unexpectedly",
                message_id=message.id,
                carrier=self._carrier.provider_name,
            )
            message.mark_failed("Carrier client error")
            outcome = "error"
        else:
            message.external_message_id = receipt.external_message_id
            message.apply_status(MessageStatus.SENT)
            outcome = "accepted"

        track_carrier_latency(self._carrier.provider_name, outcome, time.monotonic() - start_time)
        await self._repository.save(message)
        track_message(message.direction.value, message.status.value)

        log = logger.info if message.status != MessageStatus.FAILED else logger.warning
        log(
            "Outbound message processed",
            message_id=message.id,
            to_address=message.counterparty_address,
            status=message.status.value,
            crisis_flag=crisis_flag,
            escalation_id=escalation_id,
            failure_reason=message.failure_reason,
        )
        return message

    async def receive_inbound(
        self,
        from_address: Optional[str],
        to_address: Optional[str],
        body: Optional[str],
        timestamp: Optional[datetime] = None,
    ) -> InboundResult:
        """
        Store an inbound SMS and escalate it when it matches crisis
        indicators.

        Args:
            from_address: Sender (the subject)
            to_address: Our receiving address
            body: Message text
            timestamp: Carrier receive time

        Returns:
            InboundResult with the stored message and any risk event

        Raises:
            ValidationError: If any of the three fields is missing
        """
        if not from_address or not to_address or not body:
            raise ValidationError("Missing required fields: from, to, message")

        indicators = self._scanner.scan(body)

        message = Message(
            direction=MessageDirection.INBOUND,
            counterparty_address=from_address,
            local_address=to_address,
            body=body,
            crisis_flag=bool(indicators),
        )
        message.apply_status(MessageStatus.DELIVERED, timestamp)
        await self._repository.add(message)
        track_message(message.direction.value, message.status.value)

        logger.info(
            "Inbound message received",
            message_id=message.id,
            from_address=from_address,
            crisis_detected=bool(indicators),
        )

        result = InboundResult(message=message, indicators=indicators)
        if not indicators:
            return result

        result.risk_event = RiskEvent.detected(
            source_type=RiskSource.MESSAGE,
            subject_id=from_address,
            raw_score=float(len(indicators)),
            risk_level=RiskLevel.NO_RISK,
            indicators=indicators,
            indicator_level=self._indicator_level,
            reply_address=from_address,
        )

        if self._escalation_handler is None:
            logger.error(
                "Crisis detected but no escalation handler attached",
                risk_event_id=result.risk_event.id,
            )
            return result

        result.escalation = await self._escalation_handler(result.risk_event)
        return result

    async def receive_status_update(
        self,
        external_message_id: Optional[str],
        new_status: Optional[Union[str, MessageStatus]],
        timestamp: Optional[datetime] = None,
    ) -> Message:
        """
        Apply a carrier delivery-status update.

        Backward and duplicate transitions leave the message unchanged.

        Args:
            external_message_id: Carrier message id
            new_status: Carrier status (carrier vocabulary accepted)
            timestamp: When the carrier observed the change

        Returns:
            The message after the update

        Raises:
            ValidationError: If a field is missing or the status unknown
            NotFoundError: If no message has this carrier id
        """
        if not external_message_id or not new_status:
            raise ValidationError("Missing required fields: messageId, status")

        status = (
            new_status if isinstance(new_status, MessageStatus)
            else MessageStatus.from_carrier(new_status)
        )
        if status is None:
            raise ValidationError(f"Unknown message status: {new_status}")

        async with self._status_locks.hold(external_message_id):
            message = await self._repository.get_by_external_id(external_message_id)
            if message is None:
                track_status_update("unknown_message")
                raise NotFoundError("Message", external_message_id)

            previous = message.status
            changed = message.apply_status(status, timestamp)
            if changed:
                if status == MessageStatus.FAILED and not message.failure_reason:
                    message.failure_reason = f"Carrier reported {new_status}"
                await self._repository.save(message)

        track_status_update("applied" if changed else "ignored")
        logger.info(
            "Status update processed",
            message_id=message.id,
            previous_status=previous.value,
            reported_status=status.value,
            applied=changed,
        )

        if changed and status == MessageStatus.DELIVERED:
            for listener in self._delivery_listeners:
                await listener(message)

        return message

    async def refresh_status(self, message_id: str) -> Message:
        """
        Poll the carrier for a message's status and apply it.

        Carrier failures are logged and leave the message unchanged.

        Raises:
            NotFoundError: If the message does not exist
            ValidationError: If the message was never accepted by the carrier
        """
        message = await self._repository.get(message_id)
        if message is None:
            raise NotFoundError("Message", message_id)
        if not message.external_message_id:
            raise ValidationError(f"Message {message_id} has no carrier id")

        try:
            raw_status = await self._carrier.fetch_status(message.external_message_id)
        except CarrierError as e:
            logger.warning(
                "Carrier status fetch failed",
                message_id=message_id,
                error=e.message,
            )
            return message

        if MessageStatus.from_carrier(raw_status) is None:
            logger.warning(
                "Carrier returned unrecognized status",
                message_id=message_id,
                raw_status=raw_status,
            )
            return message

        return await self.receive_status_update(message.external_message_id, raw_status)

    async def get_history(self, address: Optional[str]) -> Sequence[Message]:
        """
        Messages exchanged with an address, oldest first.

        Raises:
            ValidationError: If address is empty
        """
        if not address or not address.strip():
            raise ValidationError("Phone number is required")
        return await self._repository.list_by_address(address.strip())

    async def health_check(self) -> bool:
        return await self._carrier.health_check()
