from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import Settings, get_settings


logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    kwargs: dict = {"pool_pre_ping": True, "future": True}
    if url.get_backend_name() == "sqlite":
        # El receptor procesa desde varios hilos (lanes por dispositivo)
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(pool_size=5, max_overflow=10, pool_recycle=300)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine backend=%s host=%s db=%s",
        url.get_backend_name(),
        url.host,
        url.database,
    )
    return create_engine(url, **kwargs)


def get_engine(settings: Settings | None = None) -> Engine:
    """Engine singleton del proceso."""
    global _engine

    if _engine is not None:
        return _engine

    settings = settings or get_settings()
    engine = build_engine(settings.database_url)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    _engine = engine
    return _engine

