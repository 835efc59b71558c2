"""
Metrics collection utilities.

Prometheus counters for commands, interactive callbacks, webhook
deliveries and Netlify API calls, kept in a dedicated registry.
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest, CONTENT_TYPE_LATEST

from netlify_bridge.config.constants import COMMAND_ACTIONS, NetlifyEvent

REGISTRY = CollectorRegistry()

COMMANDS_TOTAL = Counter(
    "netlify_bridge_commands_total",
    "Slash commands handled",
    ["action"],
    registry=REGISTRY,
)

CALLBACKS_TOTAL = Counter(
    "netlify_bridge_callbacks_total",
    "Interactive message callbacks handled",
    ["route", "outcome"],
    registry=REGISTRY,
)

WEBHOOK_EVENTS_TOTAL = Counter(
    "netlify_bridge_webhook_events_total",
    "Netlify webhook deliveries received",
    ["event", "outcome"],
    registry=REGISTRY,
)

NETLIFY_API_REQUESTS_TOTAL = Counter(
    "netlify_bridge_netlify_api_requests_total",
    "Requests issued to the Netlify API",
    ["operation", "status"],
    registry=REGISTRY,
)


def command_label(action: str) -> str:
    """Label for a command verb; free text typed after the trigger counts as 'unknown'."""
    if not action:
        return "help"
    return action if action in COMMAND_ACTIONS else "unknown"


def webhook_event_label(event: str) -> str:
    if event in {e.value for e in NetlifyEvent}:
        return event
    return "other"


def record_command(action: str) -> None:
    COMMANDS_TOTAL.labels(action=command_label(action)).inc()


def record_callback(route: str, outcome: str) -> None:
    CALLBACKS_TOTAL.labels(route=route, outcome=outcome).inc()


def record_webhook_event(event: str, outcome: str) -> None:
    WEBHOOK_EVENTS_TOTAL.labels(event=webhook_event_label(event), outcome=outcome).inc()


def record_netlify_request(operation: str, status: str) -> None:
    NETLIFY_API_REQUESTS_TOTAL.labels(operation=operation, status=status).inc()


def export_metrics() -> bytes:
    """Prometheus text exposition of the service registry."""
    return generate_latest(REGISTRY)


__all__ = [
    "REGISTRY",
    "CONTENT_TYPE_LATEST",
    "command_label",
    "webhook_event_label",
    "record_command",
    "record_callback",
    "record_webhook_event",
    "record_netlify_request",
    "export_metrics",
]
