"""Evaluación de reglas de alerta y notificación."""

from .evaluator import COOLDOWN, AlertRuleEvaluator
from .notification_service import NotificationSink, ResendEmailSink, build_alert_email
from .schedule import (
    SKIP_DATE_RANGE,
    SKIP_TIME_OF_DAY,
    SKIP_WEEKDAY,
    schedule_skip_reason,
    sunday_based_weekday,
    within_time_window,
)

__all__ = [
    "AlertRuleEvaluator",
    "COOLDOWN",
    "NotificationSink",
    "ResendEmailSink",
    "build_alert_email",
    "schedule_skip_reason",
    "sunday_based_weekday",
    "within_time_window",
    "SKIP_DATE_RANGE",
    "SKIP_WEEKDAY",
    "SKIP_TIME_OF_DAY",
]
