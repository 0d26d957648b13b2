"""Salud del receptor de telemetría.

El receptor está sano si MQTT y la BD responden. Redis solo alimenta el
fan-out en tiempo real: sin él la ingesta, el almacenamiento y las alertas
siguen funcionando, así que su ausencia no marca al receptor como caído.

Los carriles del dispatcher se reportan con su ocupación. Un carril por
encima de ``LANE_SATURATION`` de su capacidad deja el estado en
``degraded``: las próximas lecturas de esos dispositivos se van a descartar.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..fanout.connection import RedisConnection
from .stats import Stats

logger = logging.getLogger(__name__)

LANE_SATURATION = 0.9


class FanoutState(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass
class LaneHealth:
    """Ocupación de los carriles por dispositivo."""

    lanes: int
    queue_max: int
    queue_depths: List[int] = field(default_factory=list)
    dropped: int = 0
    errors: int = 0

    @classmethod
    def from_metrics(cls, metrics: dict) -> "LaneHealth":
        return cls(
            lanes=metrics["lanes"],
            queue_max=metrics["queue_max"],
            queue_depths=list(metrics["queue_depths"]),
            dropped=metrics.get("dropped", 0),
            errors=metrics.get("errors", 0),
        )

    @property
    def saturated_lanes(self) -> List[int]:
        if self.queue_max <= 0:
            return []
        limit = self.queue_max * LANE_SATURATION
        return [i for i, depth in enumerate(self.queue_depths) if depth >= limit]

    def to_dict(self) -> dict:
        return {
            "lanes": self.lanes,
            "queue_max": self.queue_max,
            "queue_depths": list(self.queue_depths),
            "saturated_lanes": self.saturated_lanes,
            "dropped": self.dropped,
            "errors": self.errors,
        }


@dataclass
class ReceiverHealth:
    mqtt_connected: bool
    db_connected: bool
    db_latency_ms: Optional[float]
    fanout: FanoutState
    lanes: Optional[LaneHealth]
    messages_accepted: int
    messages_failed: int

    @property
    def healthy(self) -> bool:
        return self.mqtt_connected and self.db_connected

    @property
    def status(self) -> str:
        if not self.healthy:
            return "unhealthy"
        if self.lanes is not None and self.lanes.saturated_lanes:
            return "degraded"
        return "healthy"

    def to_dict(self) -> dict:
        return {
            "healthy": self.healthy,
            "state": self.status,
            "mqtt_connected": self.mqtt_connected,
            "db_connected": self.db_connected,
            "db_latency_ms": self.db_latency_ms,
            "fanout": self.fanout.value,
            "lanes": self.lanes.to_dict() if self.lanes is not None else None,
            "messages_accepted": self.messages_accepted,
            "messages_failed": self.messages_failed,
        }


class ReceiverHealthChecker:
    """Arma el ReceiverHealth a partir de la BD, Redis y el dispatcher."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        redis_conn: Optional[RedisConnection] = None,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self._engine = engine
        self._redis = redis_conn
        self._timer = timer

    def ping_database(self) -> Optional[float]:
        """Latencia de un SELECT 1 en milisegundos, o None si la BD no responde."""
        if self._engine is None:
            return None

        started = self._timer()
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.warning("[HEALTH] Database ping failed: %s", e)
            return None
        return round((self._timer() - started) * 1000, 2)

    def fanout_state(self) -> FanoutState:
        if self._redis is not None and self._redis.is_connected:
            return FanoutState.ENABLED
        return FanoutState.DISABLED

    def get_status(
        self,
        mqtt_connected: bool,
        stats: Stats,
        lane_metrics: Optional[dict] = None,
    ) -> ReceiverHealth:
        latency = self.ping_database()

        return ReceiverHealth(
            mqtt_connected=mqtt_connected,
            db_connected=latency is not None,
            db_latency_ms=latency,
            fanout=self.fanout_state(),
            lanes=LaneHealth.from_metrics(lane_metrics) if lane_metrics else None,
            messages_accepted=stats.accepted,
            messages_failed=stats.failed,
        )
