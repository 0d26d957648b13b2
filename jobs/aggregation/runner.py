"""Ejecución de un tier de agregación."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy.engine import Engine

from common.clock import as_utc, utc_now
from telemetry_ingest.aggregation.aggregator import Aggregator
from telemetry_ingest.core.domain.errors import AggregationRunFailure
from telemetry_ingest.core.storage.aggregate_store import AggregateStore
from telemetry_ingest.core.storage.reading_store import ReadingStore

from .config import AggregationTier

logger = logging.getLogger(__name__)


def run_tier(
    engine: Engine,
    tier: AggregationTier,
    now: Optional[datetime] = None,
) -> Dict[str, Optional[int]]:
    """Corre cada granularidad del tier sobre [now - lookback, now).

    Una granularidad fallida se loguea y no frena a las demás; el
    siguiente tick la recalcula porque las ventanas se solapan.

    Returns:
        {granularidad: buckets escritos, o None si falló}
    """
    now = as_utc(now) if now is not None else utc_now()
    window_from = now - tier.lookback
    aggregator = Aggregator(ReadingStore(engine), AggregateStore(engine))

    summary: Dict[str, Optional[int]] = {}
    for granularity in tier.granularities:
        try:
            buckets = aggregator.run(granularity, window_from, now)
            summary[granularity.value] = len(buckets)
        except AggregationRunFailure as e:
            logger.error("[AGG_JOB] tier=%s %s", tier.name, e)
            summary[granularity.value] = None

    logger.info("[AGG_JOB] tier=%s done summary=%s", tier.name, summary)
    return summary
