"""Registro de dispositivos: last_seen_at por lectura aceptada."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from common.clock import as_utc, utc_now
from common.schema import devices as d

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Actualiza last_seen_at; crea el dispositivo si no existe."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def touch_last_seen(self, device_id: str, seen_at: Optional[datetime] = None) -> None:
        seen_at = seen_at or utc_now()
        with self._engine.begin() as conn:
            updated = conn.execute(
                update(d)
                .where(d.c.id == device_id)
                .values(last_seen_at=seen_at, updated_at=seen_at)
            ).rowcount
            if updated == 0:
                conn.execute(
                    insert(d).values(
                        id=device_id,
                        name=f"Device {device_id}",
                        is_active=True,
                        last_seen_at=seen_at,
                        created_at=seen_at,
                        updated_at=seen_at,
                    )
                )
                logger.info("[DEVICES] Auto-created device id=%s", device_id)

    def last_seen(self, device_id: str) -> Optional[datetime]:
        with self._engine.connect() as conn:
            row = conn.execute(select(d.c.last_seen_at).where(d.c.id == device_id)).fetchone()
        return as_utc(row[0]) if row else None
