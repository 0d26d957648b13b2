"""Monitoring - Estadísticas, salud del receptor y métricas Prometheus."""

from .health import FanoutState, LaneHealth, ReceiverHealth, ReceiverHealthChecker
from .stats import Stats

__all__ = [
    "FanoutState",
    "LaneHealth",
    "ReceiverHealth",
    "ReceiverHealthChecker",
    "Stats",
]
