"""Metrics infrastructure package."""

from crisisline.infrastructure.metrics.prometheus_metrics import (
    # Risk metrics
    RISK_EVENTS_TOTAL,
    CRISIS_INDICATORS_MATCHED,
    CLASSIFICATIONS_TOTAL,
    # Escalation metrics
    ESCALATION_ACTIONS_TOTAL,
    ESCALATION_OUTCOMES_TOTAL,
    ESCALATION_ACK_SECONDS,
    # Messaging metrics
    MESSAGES_TOTAL,
    STATUS_UPDATES_TOTAL,
    CARRIER_LATENCY,
    # Helpers
    track_risk_event,
    track_classification,
    track_escalation_action,
    track_escalation_outcome,
    track_message,
    track_status_update,
    track_carrier_latency,
    update_system_info,
    # Router
    metrics_router,
)

__all__ = [
    "RISK_EVENTS_TOTAL",
    "CRISIS_INDICATORS_MATCHED",
    "CLASSIFICATIONS_TOTAL",
    "ESCALATION_ACTIONS_TOTAL",
    "ESCALATION_OUTCOMES_TOTAL",
    "ESCALATION_ACK_SECONDS",
    "MESSAGES_TOTAL",
    "STATUS_UPDATES_TOTAL",
    "CARRIER_LATENCY",
    "track_risk_event",
    "track_classification",
    "track_escalation_action",
    "track_escalation_outcome",
    "track_message",
    "track_status_update",
    "track_carrier_latency",
    "update_system_info",
    "metrics_router",
]
