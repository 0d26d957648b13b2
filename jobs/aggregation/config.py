"""Configuración de los tiers de agregación."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Tuple

from telemetry_ingest.core.domain.aggregate import Granularity


@dataclass(frozen=True)
class AggregationTier:
    """Grupo de granularidades que comparten ventana y cron.

    La ventana (lookback) es mayor que el período del cron para que cada
    corrida vuelva a cubrir los buckets de la anterior.
    """
    name: str
    granularities: Tuple[Granularity, ...]
    lookback: timedelta
    cron: Dict[str, str] = field(default_factory=dict)


TIERS: Dict[str, AggregationTier] = {
    "minute": AggregationTier(
        name="minute",
        granularities=(Granularity.MINUTE, Granularity.FIVE_MINUTES),
        lookback=timedelta(minutes=15),
        cron={"minute": "*"},
    ),
    "hour": AggregationTier(
        name="hour",
        granularities=(Granularity.HOUR, Granularity.SIX_HOURS),
        lookback=timedelta(hours=6),
        cron={"minute": "0"},
    ),
    "day": AggregationTier(
        name="day",
        granularities=(Granularity.DAY,),
        lookback=timedelta(days=2),
        cron={"hour": "0", "minute": "0"},
    ),
}
