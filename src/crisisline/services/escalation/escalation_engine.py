"""
Escalation Engine

Turns a detected RiskEvent into outbound actions and tracks each
escalation until it is acknowledged or times out.

SAFETY-CRITICAL: The auto-reply to the subject is always attempted
first and awaited before any other action starts. Resource dispatch
and responder notification then run concurrently, issued in that
order. A failing action is recorded on the record; it never stops
the other actions or the DISPATCHED transition.

CLINICAL_REVIEW_REQUIRED: The routing table and acknowledgment
windows must be validated by crisis service professionals.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from crisisline.config.settings import EscalationSettings
from crisisline.domain.enums import MessageStatus, RiskLevel, RiskSource
from crisisline.domain.exceptions import ConflictError, NotFoundError
from crisisline.domain.models.escalation import (
    DISPATCH_ORDER,
    EscalationAction,
    EscalationActionKind,
    EscalationRecord,
    EscalationState,
)
from crisisline.domain.models.message import Message
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.concurrency import KeyedLock
from crisisline.infrastructure.metrics import (
    track_escalation_action,
    track_escalation_outcome,
    track_risk_event,
)
from crisisline.infrastructure.monitoring import capture_safety_event
from crisisline.infrastructure.storage.base import EscalationRepository, RiskEventLog
from crisisline.services.escalation.notification_sink import (
    Alert,
    AlertAudience,
    NotificationSink,
)
from crisisline.services.messaging.messaging_gateway import MessagingGateway
from crisisline.services.resources.resource_catalog import ResourceCatalog
from crisisline.config.logging_config import get_logger, mask_address

logger = get_logger(__name__)


@dataclass(frozen=True)
class Route:
    """Actions selected for one risk level."""

    auto_reply: bool = False
    resource_count: int = 0
    notify_responder: bool = False


# CLINICAL_VALIDATION_REQUIRED
ROUTING_TABLE: dict[RiskLevel, Route] = {
    RiskLevel.CRISIS: Route(auto_reply=True, resource_count=2, notify_responder=True),
    RiskLevel.SEVERE: Route(auto_reply=True, resource_count=2, notify_responder=True),
    RiskLevel.HIGH: Route(resource_count=1, notify_responder=True),
    RiskLevel.MODERATE: Route(resource_count=1),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EscalationEngine:
    """
    Escalation protocol state machine.

    States: DETECTED -> ROUTED -> DISPATCHED -> ACKNOWLEDGED | TIMED_OUT.
    Events below MODERATE route to no actions and stay DETECTED.

    Events for the same subject are handled one at a time in arrival
    order; different subjects proceed in parallel.

    Usage:
        engine = EscalationEngine(gateway, catalog, sink, escalations, risk_log, settings)
        record = await engine.handle(risk_event)
        await engine.sweep_timeouts()
    """

    def __init__(
        self,
        gateway: MessagingGateway,
        catalog: ResourceCatalog,
        sink: NotificationSink,
        escalations: EscalationRepository,
        risk_log: RiskEventLog,
        settings: Optional[EscalationSettings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the engine.

        Args:
            gateway: Messaging gateway for SMS actions
            catalog: Crisis resources to dispatch
            sink: In-session alert channel
            escalations: Escalation record storage
            risk_log: Risk event log
            settings: Escalation configuration
            clock: Current time source (UTC)
        """
        self._gateway = gateway
        self._catalog = catalog
        self._sink = sink
        self._escalations = escalations
        self._risk_log = risk_log
        self._settings = settings or EscalationSettings()
        self._clock = clock
        self._subject_locks = KeyedLock()

    def route(self, event: RiskEvent) -> list[EscalationAction]:
        """
        Select actions for an event, in dispatch order.

        Manual crisis alerts always include the auto-reply and a
        resource dispatch on top of their level's row.
        """
        route = ROUTING_TABLE.get(event.risk_level, Route())
        if event.source_type == RiskSource.MANUAL:
            route = Route(
                auto_reply=True,
                resource_count=max(route.resource_count, 1),
                notify_responder=route.notify_responder,
            )

        actions: dict[EscalationActionKind, EscalationAction] = {}
        if route.auto_reply:
            actions[EscalationActionKind.AUTO_REPLY] = EscalationAction(
                kind=EscalationActionKind.AUTO_REPLY,
            )
        if route.resource_count:
            actions[EscalationActionKind.DISPATCH_RESOURCES] = EscalationAction(
                kind=EscalationActionKind.DISPATCH_RESOURCES,
                payload={"resource_count": route.resource_count},
            )
        if route.notify_responder:
            actions[EscalationActionKind.NOTIFY_RESPONDER] = EscalationAction(
                kind=EscalationActionKind.NOTIFY_RESPONDER,
            )

        return [actions[kind] for kind in DISPATCH_ORDER if kind in actions]

    def acknowledgment_window(self, level: RiskLevel) -> Optional[timedelta]:
        """Time allowed for acknowledgment, or None for no timeout."""
        if level >= RiskLevel.SEVERE:
            return timedelta(minutes=self._settings.crisis_window_minutes)
        if level == RiskLevel.HIGH:
            return timedelta(minutes=self._settings.high_window_minutes)
        return None

    async def handle(self, event: RiskEvent) -> EscalationRecord:
        """
        Log a risk event, route it and dispatch its actions.

        Returns:
            The escalation record (DETECTED when nothing was routed,
            otherwise DISPATCHED)
        """
        async with self._subject_locks.hold(event.subject_id):
            await self._risk_log.append(event)
            track_risk_event(event.source_type.value, event.risk_level.slug, event.indicators_matched)

            record = EscalationRecord(risk_event=event)
            await self._escalations.add(record)

            actions = self.route(event)
            if not actions:
                logger.info(
                    "Risk event below escalation threshold",
                    escalation_id=record.id,
                    risk_event_id=event.id,
                    risk_level=event.risk_level.slug,
                )
                return record

            record.actions = actions
            record.state = EscalationState.ROUTED
            await self._escalations.save(record)

            logger.warning(
                "Escalation routed",
                escalation_id=record.id,
                risk_event_id=event.id,
                source_type=event.source_type.value,
                risk_level=event.risk_level.slug,
                actions=[a.kind.value for a in actions],
            )

            await self._dispatch(record)

            now = self._clock()
            window = self.acknowledgment_window(event.risk_level)
            record.state = EscalationState.DISPATCHED
            record.dispatched_at = now
            record.deadline = now + window if window else None
            await self._escalations.save(record)

            logger.info(
                "Escalation dispatched",
                escalation_id=record.id,
                succeeded=[a.kind.value for a in record.actions if a.succeeded],
                failed=[a.kind.value for a in record.actions if not a.succeeded],
                deadline=record.deadline.isoformat() if record.deadline else None,
            )
            return record

    async def get(self, escalation_id: str) -> EscalationRecord:
        """
        Raises:
            NotFoundError: If the escalation does not exist
        """
        record = await self._escalations.get(escalation_id)
        if record is None:
            raise NotFoundError("Escalation", escalation_id)
        return record

    async def acknowledge(self, escalation_id: str, responder_id: str) -> EscalationRecord:
        """
        Record a responder acknowledgment.

        Acknowledging an already acknowledged escalation is a no-op.

        Raises:
            NotFoundError: If the escalation does not exist
            ConflictError: If the escalation was not dispatched or timed out
        """
        record = await self.get(escalation_id)
        async with self._subject_locks.hold(record.risk_event.subject_id):
            if record.state == EscalationState.ACKNOWLEDGED:
                return record
            if record.state != EscalationState.DISPATCHED:
                raise ConflictError(
                    f"Escalation {escalation_id} cannot be acknowledged in state {record.state.value}"
                )
            await self._mark_acknowledged(record, responder_id)
        return record

    async def on_message_delivered(self, message: Message) -> None:
        """Delivery listener: a delivered crisis message acknowledges its escalation."""
        if message.escalation_id:
            record = await self._escalations.get(message.escalation_id)
        else:
            record = await self._escalations.find_by_message_id(message.id)
        if record is None:
            return

        async with self._subject_locks.hold(record.risk_event.subject_id):
            if record.state == EscalationState.DISPATCHED:
                await self._mark_acknowledged(record, f"delivery:{message.id}")

    async def sweep_timeouts(self, now: Optional[datetime] = None) -> list[EscalationRecord]:
        """
        Time out dispatched escalations past their deadline.

        Each timed-out record produces exactly one operator alert.
        There is no automatic re-escalation.

        Returns:
            Records that timed out in this sweep
        """
        now = now or self._clock()
        timed_out: list[EscalationRecord] = []

        for record in await self._escalations.list_dispatched():
            if record.deadline is None or now < record.deadline:
                continue

            async with self._subject_locks.hold(record.risk_event.subject_id):
                if record.state != EscalationState.DISPATCHED:
                    continue
                record.state = EscalationState.TIMED_OUT
                record.timed_out_at = now
                await self._escalations.save(record)

            track_escalation_outcome(EscalationState.TIMED_OUT.value)
            logger.error(
                "Escalation timed out without acknowledgment",
                escalation_id=record.id,
                risk_level=record.risk_event.risk_level.slug,
                deadline=record.deadline.isoformat(),
            )
            capture_safety_event(
                "Escalation timed out",
                level="error",
                extra={"escalation_id": record.id, "risk_level": record.risk_event.risk_level.slug},
            )
            await self._sink.notify(Alert(
                audience=AlertAudience.OPERATOR,
                subject_id=record.risk_event.subject_id,
                title="Escalation not acknowledged",
                body=(
                    f"Escalation {record.id} ({record.risk_event.risk_level.slug}) "
                    f"was not acknowledged by {record.deadline.isoformat()}."
                ),
                escalation_id=record.id,
                risk_level=record.risk_event.risk_level.slug,
            ))
            timed_out.append(record)

        return timed_out

    async def run_sweeper(self, interval_seconds: Optional[float] = None) -> None:
        """Sweep for timeouts until cancelled."""
        interval = interval_seconds or self._settings.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_timeouts()
            except Exception as e:
                logger.exception("Timeout sweep failed", error=str(e))

    async def _dispatch(self, record: EscalationRecord) -> None:
        actions = list(record.actions)
        if actions and actions[0].kind == EscalationActionKind.AUTO_REPLY:
            await self._run_action(record, actions.pop(0))

        tasks = [asyncio.create_task(self._run_action(record, a)) for a in actions]
        if tasks:
            await asyncio.gather(*tasks)

    async def _run_action(self, record: EscalationRecord, action: EscalationAction) -> None:
        handlers = {
            EscalationActionKind.AUTO_REPLY: self._auto_reply,
            EscalationActionKind.DISPATCH_RESOURCES: self._dispatch_resources,
            EscalationActionKind.NOTIFY_RESPONDER: self._notify_responder,
        }
        try:
            await handlers[action.kind](record, action)
        except Exception as e:
            action.succeeded = False
            action.error = str(e) or type(e).__name__
            logger.exception(
                "Escalation action failed",
                escalation_id=record.id,
                action=action.kind.value,
            )

        track_escalation_action(action.kind.value, bool(action.succeeded))

    async def _auto_reply(self, record: EscalationRecord, action: EscalationAction) -> None:
        event = record.risk_event
        text = self._settings.auto_reply_text

        if event.reply_address:
            action.payload["channel"] = "sms"
            message = await self._gateway.send(
                event.reply_address, text, crisis_flag=True, escalation_id=record.id,
            )
            self._record_message(action, message)
            return

        action.payload["channel"] = "session"
        await self._sink.notify(Alert(
            audience=AlertAudience.SUBJECT,
            subject_id=event.subject_id,
            title="We're here for you",
            body=text,
            escalation_id=record.id,
            risk_level=event.risk_level.slug,
        ))
        action.succeeded = True

    async def _dispatch_resources(self, record: EscalationRecord, action: EscalationAction) -> None:
        event = record.risk_event
        resources = self._catalog.top_resources(action.payload.get("resource_count", 1))
        action.payload["resource_ids"] = [r.id for r in resources]
        if not resources:
            action.succeeded = False
            action.error = "No crisis resources available"
            return

        body = self._catalog.format_for_sms(resources)
        if event.reply_address:
            action.payload["channel"] = "sms"
            message = await self._gateway.send(
                event.reply_address, body, crisis_flag=True, escalation_id=record.id,
            )
            self._record_message(action, message)
            return

        action.payload["channel"] = "session"
        await self._sink.notify(Alert(
            audience=AlertAudience.SUBJECT,
            subject_id=event.subject_id,
            title="Crisis resources",
            body=body,
            escalation_id=record.id,
            risk_level=event.risk_level.slug,
        ))
        action.succeeded = True

    async def _notify_responder(self, record: EscalationRecord, action: EscalationAction) -> None:
        event = record.risk_event
        subject = mask_address(event.subject_id) if event.reply_address else event.subject_id
        body = (
            f"CRISIS ALERT: {event.risk_level.slug} risk ({event.source_type.value}) "
            f"for {subject}. Escalation {record.id}."
        )
        if event.indicators_matched:
            body += f" Indicators: {', '.join(sorted(event.indicators_matched))}."

        responder = self._settings.responder_address
        if responder:
            action.payload["channel"] = "sms"
            message = await self._gateway.send(
                responder, body, crisis_flag=True, escalation_id=record.id,
            )
            self._record_message(action, message)
            return

        action.payload["channel"] = "session"
        await self._sink.notify(Alert(
            audience=AlertAudience.RESPONDER,
            subject_id=event.subject_id,
            title="Crisis escalation",
            body=body,
            escalation_id=record.id,
            risk_level=event.risk_level.slug,
        ))
        action.succeeded = True

    @staticmethod
    def _record_message(action: EscalationAction, message: Message) -> None:
        action.resulting_message_ids.append(message.id)
        action.succeeded = message.status != MessageStatus.FAILED
        action.error = message.failure_reason

    async def _mark_acknowledged(self, record: EscalationRecord, acknowledged_by: str) -> None:
        now = self._clock()
        record.state = EscalationState.ACKNOWLEDGED
        record.acknowledged_at = now
        record.acknowledged_by = acknowledged_by
        await self._escalations.save(record)

        elapsed = (now - record.dispatched_at).total_seconds() if record.dispatched_at else None
        track_escalation_outcome(EscalationState.ACKNOWLEDGED.value, elapsed)
        logger.info(
            "Escalation acknowledged",
            escalation_id=record.id,
            acknowledged_by=acknowledged_by,
        )
