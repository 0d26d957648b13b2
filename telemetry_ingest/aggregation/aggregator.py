"""Agregador de medianas por dispositivo y granularidad."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from common.clock import as_utc

from ..core.domain.aggregate import AggregateBucket, Granularity
from ..core.domain.errors import AggregationRunFailure
from ..core.monitoring.metrics import AGGREGATION_DURATION, AGGREGATION_RUNS
from ..core.storage.aggregate_store import AggregateStore
from ..core.storage.reading_store import ReadingStore
from .buckets import bucket_start, compute_buckets

logger = logging.getLogger(__name__)


class Aggregator:
    """Calcula y reemplaza los buckets de una ventana.

    Es una función pura de (granularidad, from, to) sobre las lecturas
    guardadas: el scheduler que la invoca vive aparte (jobs.aggregation).

    Ventana efectiva: ``from`` se baja al inicio de su bucket, de modo que
    el primer bucket se recalcula con todas sus lecturas. Lecturas y buckets
    se toman en [from_efectivo, to).
    """

    def __init__(self, readings: ReadingStore, aggregates: AggregateStore):
        self._readings = readings
        self._aggregates = aggregates

    def run(
        self,
        granularity: Granularity,
        window_from: datetime,
        window_to: datetime,
    ) -> List[AggregateBucket]:
        """Agrega la ventana para todos los dispositivos con lecturas.

        Cada dispositivo se reemplaza en su propia transacción; ante un
        error la corrida aborta y los dispositivos ya escritos quedan.

        Raises:
            AggregationRunFailure: si falla la lectura o escritura de algún
                dispositivo
        """
        window_from = bucket_start(window_from, granularity)
        window_to = as_utc(window_to)
        if window_from >= window_to:
            return []

        started = time.perf_counter()
        completed: List[str] = []
        produced: List[AggregateBucket] = []
        device_id = None

        try:
            for device_id in self._readings.device_ids_in_range(window_from, window_to):
                readings = self._readings.readings_in_range(device_id, window_from, window_to)
                buckets = compute_buckets(device_id, readings, granularity)
                self._aggregates.replace_window(
                    device_id, granularity, window_from, window_to, buckets,
                )
                produced.extend(buckets)
                completed.append(device_id)
        except SQLAlchemyError as e:
            AGGREGATION_RUNS.labels(granularity=granularity.value, status="failed").inc()
            logger.error(
                "[AGGREGATOR] Run failed granularity=%s device=%s completed=%d err=%s",
                granularity.value,
                device_id,
                len(completed),
                e,
            )
            raise AggregationRunFailure(
                granularity.value, window_from, window_to, device_id, completed,
            ) from e
        finally:
            AGGREGATION_DURATION.labels(granularity=granularity.value).observe(
                time.perf_counter() - started
            )

        AGGREGATION_RUNS.labels(granularity=granularity.value, status="ok").inc()
        logger.info(
            "[AGGREGATOR] granularity=%s window=[%s, %s) devices=%d buckets=%d",
            granularity.value,
            window_from.isoformat(),
            window_to.isoformat(),
            len(completed),
            len(produced),
        )
        return produced
