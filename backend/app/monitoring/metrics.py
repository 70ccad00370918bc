"""Metric definitions for the realtime relay."""

from __future__ import annotations

from .registry import registry


relay_events_total = registry.counter(
    "relay_events_total",
    "Count of inbound websocket events by kind and outcome.",
    label_names=("event", "outcome"),
)

relay_deliveries_total = registry.counter(
    "relay_deliveries_total",
    "Count of outbound payloads by fan-out scope.",
    label_names=("scope",),
)

store_failures_total = registry.counter(
    "store_failures_total",
    "Durable-store operations that failed and were rolled back.",
    label_names=("operation",),
)

realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of websocket connections attached to the relay.",
)

realtime_online_users = registry.gauge(
    "realtime_online_users",
    "Number of identities bound to a live connection.",
)
