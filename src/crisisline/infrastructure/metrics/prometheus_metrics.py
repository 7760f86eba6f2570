"""
Prometheus Metrics

Metrics for CRISISLINE observability, exposed at /metrics for
Prometheus scraping.

ARCHITECTURE: Metrics are decoupled from business logic.
Only increment/observe; never block on metrics operations.
"""

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY,
)
from fastapi import APIRouter, Response

# =============================================================================
# RISK DETECTION METRICS
# =============================================================================

RISK_EVENTS_TOTAL = Counter(
    "crisisline_risk_events_total",
    "Risk events by source and level",
    ["source_type", "risk_level"],
)

CRISIS_INDICATORS_MATCHED = Counter(
    "crisisline_crisis_indicators_matched_total",
    "Crisis indicators matched by indicator",
    ["indicator"],
)

CLASSIFICATIONS_TOTAL = Counter(
    "crisisline_classifications_total",
    "Assessment classifications by level",
    ["risk_level", "clamped"],
)

# =============================================================================
# ESCALATION METRICS
# =============================================================================

ESCALATION_ACTIONS_TOTAL = Counter(
    "crisisline_escalation_actions_total",
    "Escalation actions by kind and outcome",
    ["kind", "outcome"],  # succeeded, failed
)

ESCALATION_OUTCOMES_TOTAL = Counter(
    "crisisline_escalation_outcomes_total",
    "Escalations reaching a terminal state",
    ["state"],  # acknowledged, timed_out
)

ESCALATION_ACK_SECONDS = Histogram(
    "crisisline_escalation_ack_seconds",
    "Time from dispatch to acknowledgment",
    buckets=[5, 15, 30, 60, 120, 300, 600, 1800],
)

# =============================================================================
# MESSAGING METRICS
# =============================================================================

MESSAGES_TOTAL = Counter(
    "crisisline_messages_total",
    "Messages by direction and resulting status",
    ["direction", "status"],
)

STATUS_UPDATES_TOTAL = Counter(
    "crisisline_status_updates_total",
    "Carrier status updates by result",
    ["result"],  # applied, ignored, unknown_message
)

CARRIER_LATENCY = Histogram(
    "crisisline_carrier_latency_seconds",
    "Carrier send latency",
    ["provider", "outcome"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

# =============================================================================
# SYSTEM INFO
# =============================================================================

SYSTEM_INFO = Info(
    "crisisline_system",
    "CRISISLINE system information",
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def track_risk_event(source_type: str, risk_level: str, indicators: frozenset[str]) -> None:
    """Record a detected risk event and its matched indicators."""
    RISK_EVENTS_TOTAL.labels(source_type=source_type, risk_level=risk_level).inc()
    for indicator in indicators:
        CRISIS_INDICATORS_MATCHED.labels(indicator=indicator).inc()


def track_classification(risk_level: str, clamped: bool) -> None:
    CLASSIFICATIONS_TOTAL.labels(risk_level=risk_level, clamped=str(clamped).lower()).inc()


def track_escalation_action(kind: str, succeeded: bool) -> None:
    outcome = "succeeded" if succeeded else "failed"
    ESCALATION_ACTIONS_TOTAL.labels(kind=kind, outcome=outcome).inc()


def track_escalation_outcome(state: str, seconds_since_dispatch: float | None = None) -> None:
    """Record an escalation reaching a terminal state."""
    ESCALATION_OUTCOMES_TOTAL.labels(state=state).inc()
    if state == "acknowledged" and seconds_since_dispatch is not None:
        ESCALATION_ACK_SECONDS.observe(seconds_since_dispatch)


def track_message(direction: str, status: str) -> None:
    MESSAGES_TOTAL.labels(direction=direction, status=status).inc()


def track_status_update(result: str) -> None:
    STATUS_UPDATES_TOTAL.labels(result=result).inc()


def track_carrier_latency(provider: str, outcome: str, seconds: float) -> None:
    CARRIER_LATENCY.labels(provider=provider, outcome=outcome).observe(seconds)


# =============================================================================
# METRICS ENDPOINT
# =============================================================================

metrics_router = APIRouter(tags=["metrics"])


@metrics_router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )


def update_system_info(environment: str, version: str = "0.1.0") -> None:
    """Update system info metric with current environment."""
    SYSTEM_INFO.info({
        "version": version,
        "environment": environment,
    })
