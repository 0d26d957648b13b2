"""Health, readiness y métricas."""

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.receiver import get_receiver
from .deps import get_db_engine

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness: ok si el proceso está vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(engine: Engine = Depends(get_db_engine)):
    """Readiness: verifica la BD."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="not ready")


@router.get("/health/receiver")
def receiver_health():
    """Estado del receptor MQTT (deshabilitado si MQTT_INGEST_ENABLED=false)."""
    receiver = get_receiver()
    if receiver is None:
        return {"status": "disabled"}
    return {"status": "ok" if receiver.is_running else "stopped", **receiver.health_check()}


@router.get("/metrics")
def metrics():
    """Métricas Prometheus."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
