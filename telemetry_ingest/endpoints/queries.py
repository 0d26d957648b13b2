"""Consultas de historial (solo lectura) para dashboards."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Engine

from common.clock import as_utc, utc_now

from ..core.domain.aggregate import Granularity
from ..core.storage.aggregate_store import AggregateStore
from ..core.storage.reading_store import ReadingStore
from .deps import get_db_engine

router = APIRouter(tags=["readings"])

DEFAULT_WINDOW = timedelta(hours=24)


def _window(window_from: Optional[datetime], window_to: Optional[datetime]):
    """Ventana [from, to) en UTC; por defecto las últimas 24 h."""
    to = as_utc(window_to) if window_to else utc_now()
    frm = as_utc(window_from) if window_from else to - DEFAULT_WINDOW
    if frm >= to:
        raise HTTPException(status_code=422, detail="'from' must be earlier than 'to'")
    return frm, to


@router.get("/readings/latest")
def latest_readings(
    device_id: Optional[List[str]] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    engine: Engine = Depends(get_db_engine),
):
    readings = ReadingStore(engine).latest_readings(device_id, limit=limit)
    return [r.to_dict() for r in readings]


@router.get("/devices/{device_id}/readings/latest")
def device_latest_reading(device_id: str, engine: Engine = Depends(get_db_engine)):
    reading = ReadingStore(engine).latest_for_device(device_id)
    if reading is None:
        raise HTTPException(status_code=404, detail="no readings for device")
    return reading.to_dict()


@router.get("/devices/{device_id}/readings")
def device_readings(
    device_id: str,
    window_from: Optional[datetime] = Query(default=None, alias="from"),
    window_to: Optional[datetime] = Query(default=None, alias="to"),
    limit: int = Query(default=1000, ge=1, le=10000),
    engine: Engine = Depends(get_db_engine),
):
    """Lecturas crudas, más recientes primero."""
    frm, to = _window(window_from, window_to)
    readings = ReadingStore(engine).readings_in_range(
        device_id, frm, to, limit=limit, newest_first=True,
    )
    return [r.to_dict() for r in readings]


@router.get("/devices/{device_id}/aggregates")
def device_aggregates(
    device_id: str,
    granularity: str = Query(...),
    window_from: Optional[datetime] = Query(default=None, alias="from"),
    window_to: Optional[datetime] = Query(default=None, alias="to"),
    limit: int = Query(default=1000, ge=1, le=10000),
    engine: Engine = Depends(get_db_engine),
):
    try:
        gran = Granularity.parse(granularity)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    frm, to = _window(window_from, window_to)
    buckets = AggregateStore(engine).list_buckets(device_id, gran, frm, to, limit=limit)
    return [b.to_dict() for b in buckets]


@router.get("/devices/{device_id}/stats")
def device_stats(
    device_id: str,
    window_from: Optional[datetime] = Query(default=None, alias="from"),
    window_to: Optional[datetime] = Query(default=None, alias="to"),
    engine: Engine = Depends(get_db_engine),
):
    frm, to = _window(window_from, window_to)
    stats = ReadingStore(engine).device_stats(device_id, frm, to)
    if stats is None:
        raise HTTPException(status_code=404, detail="no readings for device in window")
    return stats


@router.get("/stats")
def all_stats(
    window_from: Optional[datetime] = Query(default=None, alias="from"),
    window_to: Optional[datetime] = Query(default=None, alias="to"),
    engine: Engine = Depends(get_db_engine),
):
    frm, to = _window(window_from, window_to)
    return ReadingStore(engine).all_device_stats(frm, to)
