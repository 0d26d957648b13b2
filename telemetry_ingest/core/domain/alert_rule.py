"""Reglas de alerta por umbral con ventana horaria opcional."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional


class MetricKind(str, Enum):
    """Métrica evaluada por la regla."""
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


@dataclass(frozen=True)
class AlertSchedule:
    """Restricciones de calendario de una regla.

    Horas en formato ``HH:MM``. Días de semana 0=domingo ... 6=sábado.
    """
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    days_of_week: FrozenSet[int] = frozenset()


@dataclass
class AlertRule:
    """Regla de alerta leída de BD.

    Este core solo modifica ``last_triggered_at`` y solo al disparar.
    """
    id: int
    device_id: str
    metric: MetricKind
    emails: List[str]
    min_threshold: Optional[float] = None
    max_threshold: Optional[float] = None
    schedule: AlertSchedule = field(default_factory=AlertSchedule)
    enabled: bool = True
    last_triggered_at: Optional[datetime] = None

    def is_violated_by(self, value: float) -> bool:
        """Umbrales estrictos: dispara si value < min o value > max."""
        if self.min_threshold is not None and value < self.min_threshold:
            return True
        if self.max_threshold is not None and value > self.max_threshold:
            return True
        return False


@dataclass(frozen=True)
class AlertEvent:
    """Disparo efectivo de una regla."""
    rule_id: int
    device_id: str
    metric: MetricKind
    value: float
    min_threshold: Optional[float]
    max_threshold: Optional[float]
    recipients: List[str]
    triggered_at: datetime
    notified: bool

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "device_id": self.device_id,
            "metric": self.metric.value,
            "value": self.value,
            "min_threshold": self.min_threshold,
            "max_threshold": self.max_threshold,
            "recipients": list(self.recipients),
            "triggered_at": self.triggered_at.isoformat(),
            "notified": self.notified,
        }
