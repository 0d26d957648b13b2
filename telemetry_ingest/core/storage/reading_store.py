"""Reading Store - lecturas crudas, append-only.

Incluye la consulta de "última lectura por dispositivo" que usa el
Change-Gate. La consulta va siempre contra la BD (no hay caché en proceso),
dentro de la misma transacción que el INSERT.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from common.clock import as_utc
from common.schema import temperature_readings as t

from ..domain.errors import PersistenceFailure
from ..domain.reading import Reading
from .change_gate import has_material_change

logger = logging.getLogger(__name__)


def _row_to_reading(row) -> Reading:
    return Reading(
        id=int(row.id),
        device_id=row.device_id,
        temperature=float(row.temperature_c),
        humidity=float(row.humidity) if row.humidity is not None else None,
        received_at=as_utc(row.received_at),
        device_timestamp=as_utc(row.device_timestamp),
    )


class ReadingStore:
    """Persistencia de lecturas sobre SQLAlchemy Core."""

    def __init__(self, engine: Engine):
        self._engine = engine

    @staticmethod
    def _latest(conn: Connection, device_id: str) -> Optional[Reading]:
        row = conn.execute(
            select(t)
            .where(t.c.device_id == device_id)
            .order_by(t.c.received_at.desc(), t.c.id.desc())
            .limit(1)
        ).fetchone()
        return _row_to_reading(row) if row else None

    def latest_for_device(self, device_id: str) -> Optional[Reading]:
        with self._engine.connect() as conn:
            return self._latest(conn, device_id)

    def save_if_changed(self, reading: Reading) -> Optional[Reading]:
        """Aplica el Change-Gate y persiste.

        Returns:
            La lectura guardada (con id) o None si era indistinguible
            de la anterior.

        Raises:
            PersistenceFailure: si la BD no está disponible
        """
        try:
            with self._engine.begin() as conn:
                prior = self._latest(conn, reading.device_id)
                if not has_material_change(prior, reading.temperature, reading.humidity):
                    logger.debug(
                        "[CHANGE_GATE] Unchanged, dropped device=%s temp=%.2f",
                        reading.device_id,
                        reading.temperature,
                    )
                    return None

                result = conn.execute(insert(t).values(**reading.to_row()))
                new_id = result.inserted_primary_key[0]
        except SQLAlchemyError as e:
            logger.error("[READINGS] Insert failed device=%s err=%s", reading.device_id, e)
            raise PersistenceFailure(
                f"could not persist reading for device {reading.device_id}"
            ) from e

        return Reading(
            id=int(new_id),
            device_id=reading.device_id,
            temperature=reading.temperature,
            humidity=reading.humidity,
            received_at=reading.received_at,
            device_timestamp=reading.device_timestamp,
        )

    def readings_in_range(
        self,
        device_id: str,
        window_from: datetime,
        window_to: datetime,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> List[Reading]:
        """Lecturas de un dispositivo en [from, to)."""
        order = (
            (t.c.received_at.desc(), t.c.id.desc())
            if newest_first
            else (t.c.received_at.asc(), t.c.id.asc())
        )
        stmt = (
            select(t)
            .where(
                t.c.device_id == device_id,
                t.c.received_at >= window_from,
                t.c.received_at < window_to,
            )
            .order_by(*order)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._engine.connect() as conn:
            return [_row_to_reading(r) for r in conn.execute(stmt)]

    def device_ids_in_range(self, window_from: datetime, window_to: datetime) -> List[str]:
        """Dispositivos con al menos una lectura en [from, to)."""
        stmt = (
            select(t.c.device_id)
            .where(t.c.received_at >= window_from, t.c.received_at < window_to)
            .distinct()
            .order_by(t.c.device_id)
        )
        with self._engine.connect() as conn:
            return [r[0] for r in conn.execute(stmt)]

    def latest_readings(
        self,
        device_ids: Optional[Iterable[str]] = None,
        limit: int = 100,
    ) -> List[Reading]:
        stmt = select(t).order_by(t.c.received_at.desc(), t.c.id.desc()).limit(limit)
        ids = [d for d in (device_ids or []) if d]
        if ids:
            stmt = stmt.where(t.c.device_id.in_(ids))
        with self._engine.connect() as conn:
            return [_row_to_reading(r) for r in conn.execute(stmt)]

    def _stats_stmt(self, window_from: datetime, window_to: datetime):
        return (
            select(
                t.c.device_id,
                func.avg(t.c.temperature_c).label("avg_temp"),
                func.min(t.c.temperature_c).label("min_temp"),
                func.max(t.c.temperature_c).label("max_temp"),
                func.avg(t.c.humidity).label("avg_humidity"),
                func.count().label("reading_count"),
            )
            .where(t.c.received_at >= window_from, t.c.received_at < window_to)
            .group_by(t.c.device_id)
            .order_by(t.c.device_id)
        )

    @staticmethod
    def _stats_row(row) -> dict:
        return {
            "device_id": row.device_id,
            "avg_temp": float(row.avg_temp),
            "min_temp": float(row.min_temp),
            "max_temp": float(row.max_temp),
            "avg_humidity": float(row.avg_humidity) if row.avg_humidity is not None else None,
            "reading_count": int(row.reading_count),
        }

    def device_stats(
        self, device_id: str, window_from: datetime, window_to: datetime,
    ) -> Optional[dict]:
        stmt = self._stats_stmt(window_from, window_to).where(t.c.device_id == device_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return self._stats_row(row) if row else None

    def all_device_stats(self, window_from: datetime, window_to: datetime) -> List[dict]:
        with self._engine.connect() as conn:
            return [self._stats_row(r) for r in conn.execute(self._stats_stmt(window_from, window_to))]
