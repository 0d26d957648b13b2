"""Alineación de buckets y cálculo de medianas.

Todas las granularidades tienen ancho fijo en segundos, así que el inicio
de bucket es el piso del epoch UTC. Para 1m, 1h y 1d coincide con truncar
al minuto, la hora o el día UTC; 5m y 6h quedan alineados a :00/:05/... y
00/06/12/18 h.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from statistics import median
from typing import Dict, Iterable, List

from common.clock import as_utc

from ..core.domain.aggregate import AggregateBucket, Granularity
from ..core.domain.reading import Reading

BUCKET_SECONDS: Dict[Granularity, int] = {
    Granularity.MINUTE: 60,
    Granularity.FIVE_MINUTES: 5 * 60,
    Granularity.HOUR: 60 * 60,
    Granularity.SIX_HOURS: 6 * 60 * 60,
    Granularity.DAY: 24 * 60 * 60,
}

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def bucket_width(granularity: Granularity) -> timedelta:
    return timedelta(seconds=BUCKET_SECONDS[granularity])


def bucket_start(ts: datetime, granularity: Granularity) -> datetime:
    """Inicio del bucket que contiene ``ts`` (UTC)."""
    width = BUCKET_SECONDS[granularity]
    offset = (as_utc(ts) - _EPOCH) // timedelta(seconds=1)
    return _EPOCH + timedelta(seconds=offset - offset % width)


def compute_buckets(
    device_id: str,
    readings: Iterable[Reading],
    granularity: Granularity,
) -> List[AggregateBucket]:
    """Mediana de temperatura por bucket.

    Solo emite buckets con al menos una lectura (sin relleno de huecos).
    Con cantidad par de lecturas la mediana es el promedio de las dos
    centrales, igual que percentile_cont(0.5).
    """
    groups: Dict[datetime, List[float]] = defaultdict(list)
    for reading in readings:
        groups[bucket_start(reading.received_at, granularity)].append(reading.temperature)

    return [
        AggregateBucket(
            device_id=device_id,
            granularity=granularity,
            bucket_start=start,
            median_c=float(median(values)),
        )
        for start, values in sorted(groups.items())
    ]
