"""Validation layer - Validación de payloads y reglas."""

from .payload_validator import TelemetryPayload, ValidationResult, validate_telemetry
from .rule_validator import AlertRuleIn

__all__ = ["TelemetryPayload", "ValidationResult", "validate_telemetry", "AlertRuleIn"]
