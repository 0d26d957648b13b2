"""Storage layer - Lecturas, agregados, reglas y dispositivos."""

from .aggregate_store import AggregateStore
from .alert_rule_repository import AlertRuleRepository
from .change_gate import has_material_change
from .device_registry import DeviceRegistry
from .reading_store import ReadingStore

__all__ = [
    "AggregateStore",
    "AlertRuleRepository",
    "has_material_change",
    "DeviceRegistry",
    "ReadingStore",
]
