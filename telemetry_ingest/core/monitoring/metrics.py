"""Métricas Prometheus del servicio."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

READINGS_TOTAL = Counter(
    "heatsync_readings_total",
    "Telemetry messages by outcome",
    ["status"],  # accepted, unchanged, malformed, failed, dropped
)

ALERTS_FIRED = Counter(
    "heatsync_alerts_fired_total",
    "Alert rules fired",
)

ALERTS_SUPPRESSED = Counter(
    "heatsync_alerts_suppressed_total",
    "Alert rule evaluations skipped by schedule or throttle",
    ["reason"],  # throttled, date_range, weekday, time_of_day
)

NOTIFICATION_FAILURES = Counter(
    "heatsync_notification_failures_total",
    "Alert notifications that could not be sent",
)

AGGREGATION_RUNS = Counter(
    "heatsync_aggregation_runs_total",
    "Aggregation runs by granularity and outcome",
    ["granularity", "status"],  # ok, failed
)

AGGREGATION_DURATION = Histogram(
    "heatsync_aggregation_duration_seconds",
    "Aggregation run duration",
    ["granularity"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0],
)
