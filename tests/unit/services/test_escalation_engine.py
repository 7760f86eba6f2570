"""
Unit Tests for Escalation Engine

Tests routing, dispatch ordering, acknowledgment and timeouts.
"""

import asyncio

import pytest

from crisisline.config.settings import DEFAULT_AUTO_REPLY, EscalationSettings
from crisisline.domain.enums import MessageStatus, RiskLevel, RiskSource
from crisisline.domain.exceptions import ConflictError, NotFoundError
from crisisline.domain.models.escalation import EscalationActionKind, EscalationState
from crisisline.domain.models.risk_event import RiskEvent
from crisisline.infrastructure.storage import (
    InMemoryMessageRepository,
    InMemoryRiskEventLog,
)
from crisisline.services.escalation import (
    AlertAudience,
    EscalationEngine,
    InMemoryNotificationSink,
)
from crisisline.services.messaging import CarrierReceipt, MessagingGateway, SandboxCarrierClient
from crisisline.services.resources import ResourceCatalog

SUBJECT = "+15551234567"
RESPONDER = "+15559990000"


def sms_event(level: RiskLevel = RiskLevel.CRISIS, **kwargs: object) -> RiskEvent:
    return RiskEvent(
        source_type=kwargs.pop("source_type", RiskSource.MESSAGE),
        subject_id=SUBJECT,
        raw_score=1.0,
        risk_level=level,
        indicators_matched=frozenset({"suicide"}),
        reply_address=SUBJECT,
        **kwargs,
    )


def session_event(level: RiskLevel) -> RiskEvent:
    return RiskEvent(
        source_type=RiskSource.ASSESSMENT,
        subject_id="user-42",
        raw_score=9.0,
        risk_level=level,
    )


def kinds(record) -> list[EscalationActionKind]:
    return [a.kind for a in record.actions]


class RecordingCarrier(SandboxCarrierClient):
    """Sandbox carrier that logs send start/end and slows resource messages."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[str] = []

    async def send(self, to_address: str, body: str, originator: str) -> CarrierReceipt:
        label = "resources" if body.startswith("Crisis support") else "other"
        if to_address == RESPONDER:
            label = "responder"
        elif label == "other":
            label = "auto_reply"
        self.events.append(f"{label}:start")
        if label == "auto_reply":
            await asyncio.sleep(0.02)
        if label == "resources":
            await asyncio.sleep(0.05)
        receipt = await super().send(to_address, body, originator)
        self.events.append(f"{label}:end")
        return receipt


class TestRouting:
    """Test suite for the routing table."""

    def test_crisis_routes_all_actions_in_order(self, engine: EscalationEngine) -> None:
        actions = engine.route(sms_event(RiskLevel.CRISIS))

        assert [a.kind for a in actions] == [
            EscalationActionKind.AUTO_REPLY,
            EscalationActionKind.DISPATCH_RESOURCES,
            EscalationActionKind.NOTIFY_RESPONDER,
        ]
        assert actions[1].payload["resource_count"] == 2

    def test_severe_routes_like_crisis(self, engine: EscalationEngine) -> None:
        assert [a.kind for a in engine.route(sms_event(RiskLevel.SEVERE))] == [
            a.kind for a in engine.route(sms_event(RiskLevel.CRISIS))
        ]

    def test_high_routes_resource_and_responder(self, engine: EscalationEngine) -> None:
        actions = engine.route(session_event(RiskLevel.HIGH))

        assert [a.kind for a in actions] == [
            EscalationActionKind.DISPATCH_RESOURCES,
            EscalationActionKind.NOTIFY_RESPONDER,
        ]
        assert actions[0].payload["resource_count"] == 1

    def test_moderate_routes_one_resource(self, engine: EscalationEngine) -> None:
        actions = engine.route(session_event(RiskLevel.MODERATE))

        assert [a.kind for a in actions] == [EscalationActionKind.DISPATCH_RESOURCES]

    @pytest.mark.parametrize("level", [RiskLevel.NO_RISK, RiskLevel.LOW])
    def test_low_levels_route_nothing(self, engine: EscalationEngine, level: RiskLevel) -> None:
        assert engine.route(session_event(level)) == []

    def test_manual_alert_always_replies(self, engine: EscalationEngine) -> None:
        """Test that an explicit alert gets the auto-reply and a resource at any level."""
        actions = engine.route(sms_event(RiskLevel.LOW, source_type=RiskSource.MANUAL))

        assert [a.kind for a in actions] == [
            EscalationActionKind.AUTO_REPLY,
            EscalationActionKind.DISPATCH_RESOURCES,
        ]


class TestHandle:
    """Test suite for escalation dispatch."""

    @pytest.mark.asyncio
    async def test_crisis_over_sms(
        self,
        engine: EscalationEngine,
        carrier: SandboxCarrierClient,
        sink: InMemoryNotificationSink,
        risk_log: InMemoryRiskEventLog,
        clock,
    ) -> None:
        """Test a CRISIS SMS event: auto-reply, two resources, responder alert."""
        event = sms_event()
        record = await engine.handle(event)

        assert record.state == EscalationState.DISPATCHED
        assert all(a.succeeded for a in record.actions)
        assert record.dispatched_at == clock.now
        assert (record.deadline - record.dispatched_at).total_seconds() == 600

        to_subject = [body for to, body in carrier.sent if to == SUBJECT]
        assert to_subject[0] == DEFAULT_AUTO_REPLY
        assert to_subject[1].startswith("Crisis support available now:")
        assert "988" in to_subject[1]

        responder_alerts = sink.for_escalation(record.id, AlertAudience.RESPONDER)
        assert len(responder_alerts) == 1
        assert "crisis" in responder_alerts[0].body
        assert SUBJECT not in responder_alerts[0].body

        assert await risk_log.get(event.id) == event

    @pytest.mark.asyncio
    async def test_auto_reply_completes_before_other_actions(
        self,
        message_repository: InMemoryMessageRepository,
        sink: InMemoryNotificationSink,
        escalations,
        risk_log: InMemoryRiskEventLog,
        clock,
    ) -> None:
        """Test that resource and responder sends start only after the auto-reply finished."""
        carrier = RecordingCarrier()
        gateway = MessagingGateway(message_repository, carrier, originator="+18005550100")
        engine = EscalationEngine(
            gateway=gateway,
            catalog=ResourceCatalog(),
            sink=sink,
            escalations=escalations,
            risk_log=risk_log,
            settings=EscalationSettings(responder_address=RESPONDER),
            clock=clock,
        )

        record = await engine.handle(sms_event())

        assert carrier.events[:2] == ["auto_reply:start", "auto_reply:end"]
        assert carrier.events.index("resources:start") < carrier.events.index("responder:start")
        # The slow resource send does not hold up the responder
        assert carrier.events.index("responder:end") < carrier.events.index("resources:end")

        history = await gateway.get_history(SUBJECT)
        assert [m.body for m in history][0] == DEFAULT_AUTO_REPLY
        assert len(record.message_ids) == 3

    @pytest.mark.asyncio
    async def test_failed_auto_reply_does_not_stop_escalation(
        self,
        message_repository: InMemoryMessageRepository,
        engine: EscalationEngine,
        carrier: SandboxCarrierClient,
    ) -> None:
        """Test that a carrier rejection is recorded and the rest still dispatches."""
        carrier.reject_addresses.add(SUBJECT)

        record = await engine.handle(sms_event())

        by_kind = {a.kind: a for a in record.actions}
        assert by_kind[EscalationActionKind.AUTO_REPLY].succeeded is False
        assert by_kind[EscalationActionKind.AUTO_REPLY].error
        assert by_kind[EscalationActionKind.NOTIFY_RESPONDER].succeeded is True
        assert record.state == EscalationState.DISPATCHED

        failed = await message_repository.get(by_kind[EscalationActionKind.AUTO_REPLY].resulting_message_ids[0])
        assert failed.status == MessageStatus.FAILED

    @pytest.mark.asyncio
    async def test_session_subject_gets_alerts(
        self,
        engine: EscalationEngine,
        sink: InMemoryNotificationSink,
        carrier: SandboxCarrierClient,
    ) -> None:
        """Test that subjects without an SMS address are reached in-session."""
        record = await engine.handle(session_event(RiskLevel.CRISIS))

        subject_alerts = sink.for_escalation(record.id, AlertAudience.SUBJECT)
        assert [a.title for a in subject_alerts] == ["We're here for you", "Crisis resources"]
        assert carrier.sent == []

    @pytest.mark.asyncio
    async def test_below_threshold_stays_detected(
        self,
        engine: EscalationEngine,
        risk_log: InMemoryRiskEventLog,
    ) -> None:
        event = session_event(RiskLevel.LOW)

        record = await engine.handle(event)

        assert record.state == EscalationState.DETECTED
        assert record.actions == []
        assert await risk_log.list_for_subject("user-42") == [event]

    @pytest.mark.asyncio
    async def test_moderate_has_no_deadline(self, engine: EscalationEngine) -> None:
        record = await engine.handle(session_event(RiskLevel.MODERATE))

        assert record.state == EscalationState.DISPATCHED
        assert record.deadline is None

    @pytest.mark.asyncio
    async def test_high_uses_longer_window(self, engine: EscalationEngine) -> None:
        record = await engine.handle(session_event(RiskLevel.HIGH))

        assert (record.deadline - record.dispatched_at).total_seconds() == 30 * 60


class TestAcknowledgment:
    """Test suite for acknowledgment and timeouts."""

    @pytest.mark.asyncio
    async def test_acknowledge(self, engine: EscalationEngine) -> None:
        record = await engine.handle(sms_event())

        acked = await engine.acknowledge(record.id, "responder-7")

        assert acked.state == EscalationState.ACKNOWLEDGED
        assert acked.acknowledged_by == "responder-7"

    @pytest.mark.asyncio
    async def test_acknowledge_twice_is_noop(self, engine: EscalationEngine) -> None:
        record = await engine.handle(sms_event())
        await engine.acknowledge(record.id, "responder-7")

        again = await engine.acknowledge(record.id, "responder-8")

        assert again.acknowledged_by == "responder-7"

    @pytest.mark.asyncio
    async def test_acknowledge_unknown(self, engine: EscalationEngine) -> None:
        with pytest.raises(NotFoundError):
            await engine.acknowledge("esc_missing", "responder-7")

    @pytest.mark.asyncio
    async def test_delivery_acknowledges(
        self,
        engine: EscalationEngine,
        gateway: MessagingGateway,
        message_repository: InMemoryMessageRepository,
    ) -> None:
        """Test that a delivered crisis message acknowledges its escalation."""
        record = await engine.handle(sms_event())
        auto_reply = record.actions[0]
        message = await message_repository.get(auto_reply.resulting_message_ids[0])

        await gateway.receive_status_update(message.external_message_id, "delivered")

        assert record.state == EscalationState.ACKNOWLEDGED
        assert record.acknowledged_by == f"delivery:{message.id}"

    @pytest.mark.asyncio
    async def test_timeout_alerts_operator_once(
        self,
        engine: EscalationEngine,
        sink: InMemoryNotificationSink,
        clock,
    ) -> None:
        """Test that an unacknowledged CRISIS escalation times out with one operator alert."""
        record = await engine.handle(sms_event())

        clock.advance(minutes=9)
        assert await engine.sweep_timeouts() == []

        clock.advance(minutes=2)
        timed_out = await engine.sweep_timeouts()
        assert [r.id for r in timed_out] == [record.id]
        assert record.state == EscalationState.TIMED_OUT

        clock.advance(minutes=5)
        assert await engine.sweep_timeouts() == []
        assert len(sink.for_escalation(record.id, AlertAudience.OPERATOR)) == 1

    @pytest.mark.asyncio
    async def test_timed_out_cannot_be_acknowledged(
        self,
        engine: EscalationEngine,
        clock,
    ) -> None:
        record = await engine.handle(sms_event())
        clock.advance(minutes=11)
        await engine.sweep_timeouts()

        with pytest.raises(ConflictError):
            await engine.acknowledge(record.id, "responder-7")

    @pytest.mark.asyncio
    async def test_acknowledged_never_times_out(
        self,
        engine: EscalationEngine,
        clock,
    ) -> None:
        record = await engine.handle(sms_event())
        await engine.acknowledge(record.id, "responder-7")

        clock.advance(hours=1)

        assert await engine.sweep_timeouts() == []
        assert record.state == EscalationState.ACKNOWLEDGED


class GatedCarrier(SandboxCarrierClient):
    """Sandbox carrier whose sends to gated addresses wait until released."""

    def __init__(self, gated: set[str]) -> None:
        super().__init__()
        self.gated = gated
        self.gate = asyncio.Event()
        self.first_gated_send = asyncio.Event()
        self.started: list[str] = []
        self.completed: list[str] = []

    async def send(self, to_address: str, body: str, originator: str) -> CarrierReceipt:
        self.started.append(to_address)
        if to_address in self.gated:
            self.first_gated_send.set()
            await self.gate.wait()
        receipt = await super().send(to_address, body, originator)
        self.completed.append(receipt.external_message_id)
        return receipt


class TestSubjectSerialization:
    """Test suite for per-subject ordering of risk events."""

    @pytest.fixture
    def gated_carrier(self) -> GatedCarrier:
        return GatedCarrier(gated={SUBJECT})

    @pytest.fixture
    def gated_engine(
        self,
        gated_carrier: GatedCarrier,
        message_repository: InMemoryMessageRepository,
        sink: InMemoryNotificationSink,
        escalations,
        risk_log: InMemoryRiskEventLog,
        clock,
    ) -> EscalationEngine:
        gateway = MessagingGateway(message_repository, gated_carrier, originator="+18005550100")
        return EscalationEngine(
            gateway=gateway,
            catalog=ResourceCatalog(),
            sink=sink,
            escalations=escalations,
            risk_log=risk_log,
            settings=EscalationSettings(),
            clock=clock,
        )

    @pytest.mark.asyncio
    async def test_same_subject_handled_in_arrival_order(
        self,
        gated_engine: EscalationEngine,
        gated_carrier: GatedCarrier,
        message_repository: InMemoryMessageRepository,
        risk_log: InMemoryRiskEventLog,
    ) -> None:
        """Test that a second event waits until the first one has dispatched."""
        first = asyncio.create_task(gated_engine.handle(sms_event()))
        await asyncio.wait_for(gated_carrier.first_gated_send.wait(), timeout=1)

        second = asyncio.create_task(gated_engine.handle(sms_event()))
        for _ in range(20):
            await asyncio.sleep(0)

        assert gated_carrier.started == [SUBJECT]
        assert not second.done()
        assert len(await risk_log.list_for_subject(SUBJECT)) == 1

        gated_carrier.gate.set()
        first_record, second_record = await asyncio.wait_for(
            asyncio.gather(first, second), timeout=1
        )

        assert first_record.state == EscalationState.DISPATCHED
        assert second_record.state == EscalationState.DISPATCHED
        logged = await risk_log.list_for_subject(SUBJECT)
        assert [e.id for e in logged] == [first_record.risk_event.id, second_record.risk_event.id]

        first_ids = {
            (await message_repository.get(mid)).external_message_id
            for mid in first_record.message_ids
        }
        assert first_ids
        assert set(gated_carrier.completed[:len(first_ids)]) == first_ids

    @pytest.mark.asyncio
    async def test_other_subject_not_blocked(
        self,
        gated_engine: EscalationEngine,
        gated_carrier: GatedCarrier,
    ) -> None:
        """Test that a hung send for one subject does not hold up another subject."""
        other = "+15552220000"
        blocked = asyncio.create_task(gated_engine.handle(sms_event()))
        await asyncio.wait_for(gated_carrier.first_gated_send.wait(), timeout=1)

        other_event = RiskEvent(
            source_type=RiskSource.MESSAGE,
            subject_id=other,
            raw_score=1.0,
            risk_level=RiskLevel.CRISIS,
            indicators_matched=frozenset({"suicide"}),
            reply_address=other,
        )
        record = await asyncio.wait_for(gated_engine.handle(other_event), timeout=1)

        assert record.state == EscalationState.DISPATCHED
        assert not blocked.done()

        gated_carrier.gate.set()
        blocked_record = await asyncio.wait_for(blocked, timeout=1)
        assert blocked_record.state == EscalationState.DISPATCHED
