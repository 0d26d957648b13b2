"""Compuertas de calendario de una regla (fechas, días, franja horaria).

Se evalúan contra la hora actual del servidor, nunca contra la hora que
reporta el dispositivo.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional

from ..domain.alert_rule import AlertSchedule

SKIP_DATE_RANGE = "date_range"
SKIP_WEEKDAY = "weekday"
SKIP_TIME_OF_DAY = "time_of_day"


def parse_hhmm(value: str) -> int:
    """'HH:MM' → minutos desde medianoche."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def sunday_based_weekday(moment: datetime) -> int:
    """Día de semana con 0=domingo ... 6=sábado."""
    return (moment.weekday() + 1) % 7


def within_time_window(start: int, end: int, current: int) -> bool:
    """Franja inclusiva [start, end] en minutos del día.

    Si start > end la franja cruza medianoche: dentro si current >= start
    o current <= end.
    """
    if start <= end:
        return start <= current <= end
    return current >= start or current <= end


def schedule_skip_reason(
    schedule: AlertSchedule,
    now: datetime,
    tz: tzinfo,
) -> Optional[str]:
    """Motivo por el que la regla no aplica ahora, o None si aplica.

    Orden: rango de fechas → día de semana → franja horaria.
    """
    if schedule.start_date is not None and now < schedule.start_date:
        return SKIP_DATE_RANGE
    if schedule.end_date is not None and now > schedule.end_date:
        return SKIP_DATE_RANGE

    local_now = now.astimezone(tz)

    if schedule.days_of_week and sunday_based_weekday(local_now) not in schedule.days_of_week:
        return SKIP_WEEKDAY

    if schedule.start_time and schedule.end_time:
        current = local_now.hour * 60 + local_now.minute
        start = parse_hhmm(schedule.start_time)
        end = parse_hhmm(schedule.end_time)
        if not within_time_window(start, end, current):
            return SKIP_TIME_OF_DAY

    return None
