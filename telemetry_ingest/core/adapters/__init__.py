"""Adapters layer - Conversión de contratos externos a dominio."""

from .telemetry_adapter import TelemetryAdapter

__all__ = ["TelemetryAdapter"]
