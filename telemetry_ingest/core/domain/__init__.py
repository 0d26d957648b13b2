"""Domain layer - Modelos y contratos."""

from .aggregate import AggregateBucket, Granularity
from .alert_rule import AlertEvent, AlertRule, AlertSchedule, MetricKind
from .errors import (
    AggregationRunFailure,
    MalformedMessage,
    NotificationFailure,
    PersistenceFailure,
    TelemetryError,
)
from .reading import Reading

__all__ = [
    "AggregateBucket",
    "Granularity",
    "AlertEvent",
    "AlertRule",
    "AlertSchedule",
    "MetricKind",
    "AggregationRunFailure",
    "MalformedMessage",
    "NotificationFailure",
    "PersistenceFailure",
    "TelemetryError",
    "Reading",
]
