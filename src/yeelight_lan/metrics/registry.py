"""Prometheus metrics registry for Yeelight bulb sessions."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Outbound
yeelight_command_sent_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_command_sent_total",
    "Total commands written to bulbs",
    ["device", "method", "outcome"],
)

# Inbound
yeelight_message_recv_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_message_recv_total",
    "Total inbound messages by kind",
    ["device", "kind"],
)

yeelight_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_decode_errors_total",
    "Total inbound lines dropped as malformed",
    ["device", "reason"],
)

yeelight_device_errors_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_device_errors_total",
    "Total error replies reported by bulbs",
    ["device", "code"],
)

yeelight_reply_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "yeelight_reply_latency_seconds",
    "Time from command send to matching reply",
    ["device"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 30.0),
)

# Correlation
yeelight_pending_commands: Final = Gauge(  # type: ignore[assignment]
    "yeelight_pending_commands",
    "Commands awaiting a reply",
    ["device"],
)

yeelight_stale_evictions_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_stale_evictions_total",
    "Total pending commands evicted without a reply",
    ["device"],
)

yeelight_compensation_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_compensation_total",
    "Total compensating set_scene commands issued",
    ["device", "method"],
)

# Connection
yeelight_connection_state: Final = Gauge(  # type: ignore[assignment]
    "yeelight_connection_state",
    "Current connection state",
    ["device", "state"],
)

yeelight_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_reconnection_total",
    "Total scheduled reconnections",
    ["device", "reason"],
)

# Discovery
yeelight_discovery_responses_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_discovery_responses_total",
    "Total discovery replies parsed",
    ["outcome"],
)

_CONNECTION_STATES = ("idle", "connecting", "connected", "disconnected")

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_command_sent(device: str, method: str, outcome: str) -> None:
    """Record a command write attempt."""
    yeelight_command_sent_total.labels(device=device, method=method, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_message_recv(device: str, kind: str) -> None:
    """Record an inbound message (result, error, notification)."""
    yeelight_message_recv_total.labels(device=device, kind=kind).inc()  # type: ignore[no-untyped-call]


def record_decode_error(device: str, reason: str) -> None:
    """Record a dropped malformed line."""
    yeelight_decode_errors_total.labels(device=device, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_device_error(device: str, code: int) -> None:
    """Record an error reply from a bulb."""
    yeelight_device_errors_total.labels(device=device, code=str(code)).inc()  # type: ignore[no-untyped-call]


def record_reply_latency(device: str, latency_seconds: float) -> None:
    """Record send-to-reply latency."""
    yeelight_reply_latency_seconds.labels(device=device).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_pending_commands(device: str, size: int) -> None:
    """Record pending table size."""
    yeelight_pending_commands.labels(device=device).set(size)  # type: ignore[no-untyped-call]


def record_stale_evictions(device: str, count: int) -> None:
    """Record pending commands evicted by the staleness sweep."""
    if count:
        yeelight_stale_evictions_total.labels(device=device).inc(count)  # type: ignore[no-untyped-call]


def record_compensation(device: str, method: str) -> None:
    """Record a compensating set_scene for the failed method."""
    yeelight_compensation_total.labels(device=device, method=method).inc()  # type: ignore[no-untyped-call]


def record_connection_state(device: str, state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in _CONNECTION_STATES:
        value = 1 if s == state else 0
        yeelight_connection_state.labels(device=device, state=s).set(value)  # type: ignore[no-untyped-call]


def record_reconnection(device: str, reason: str) -> None:
    """Record a scheduled reconnection."""
    yeelight_reconnection_total.labels(device=device, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_discovery_response(outcome: str) -> None:
    """Record a discovery reply (parsed or ignored)."""
    yeelight_discovery_responses_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]
