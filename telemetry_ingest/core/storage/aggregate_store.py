"""Persistencia de buckets agregados."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine

from common.clock import as_utc
from common.schema import temperature_aggregates as a

from ..domain.aggregate import AggregateBucket, Granularity

logger = logging.getLogger(__name__)


class AggregateStore:
    """Escritura idempotente de buckets (DELETE + INSERT en una transacción)."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def replace_window(
        self,
        device_id: str,
        granularity: Granularity,
        window_from: datetime,
        window_to: datetime,
        buckets: Sequence[AggregateBucket],
    ) -> int:
        """Reemplaza los buckets de [from, to) de un dispositivo.

        Borrado e inserción van en la misma transacción: un lector ve los
        buckets previos o los nuevos, nunca un hueco.

        Returns:
            Número de buckets insertados
        """
        with self._engine.begin() as conn:
            deleted = conn.execute(
                delete(a).where(
                    a.c.device_id == device_id,
                    a.c.granularity == granularity.value,
                    a.c.bucket_start >= window_from,
                    a.c.bucket_start < window_to,
                )
            ).rowcount
            if buckets:
                conn.execute(insert(a), [b.to_row() for b in buckets])

        logger.debug(
            "[AGGREGATES] Replaced device=%s granularity=%s deleted=%s inserted=%d",
            device_id,
            granularity.value,
            deleted,
            len(buckets),
        )
        return len(buckets)

    def list_buckets(
        self,
        device_id: str,
        granularity: Granularity,
        window_from: datetime,
        window_to: datetime,
        limit: int = 1000,
        newest_first: bool = True,
    ) -> List[AggregateBucket]:
        order = a.c.bucket_start.desc() if newest_first else a.c.bucket_start.asc()
        stmt = (
            select(a)
            .where(
                a.c.device_id == device_id,
                a.c.granularity == granularity.value,
                a.c.bucket_start >= window_from,
                a.c.bucket_start < window_to,
            )
            .order_by(order)
            .limit(limit)
        )
        with self._engine.connect() as conn:
            return [
                AggregateBucket(
                    device_id=r.device_id,
                    granularity=Granularity(r.granularity),
                    bucket_start=as_utc(r.bucket_start),
                    median_c=float(r.median_c),
                )
                for r in conn.execute(stmt)
            ]
