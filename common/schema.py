"""Definición de tablas (SQLAlchemy Core) y bootstrap del esquema."""

from __future__ import annotations

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()


devices = Table(
    "devices",
    metadata,
    Column("id", String(128), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("last_seen_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


temperature_readings = Table(
    "temperature_readings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("received_at", DateTime(timezone=True), nullable=False),
    Column("temperature_c", Float, nullable=False),
    Column("humidity", Float),
    Column("device_id", String(128), nullable=False),
    Column("device_timestamp", DateTime(timezone=True)),
    Index("temperature_readings_received_at_idx", "received_at"),
    Index("temperature_readings_device_received_idx", "device_id", "received_at"),
)


temperature_aggregates = Table(
    "temperature_aggregates",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("bucket_start", DateTime(timezone=True), nullable=False),
    # '1m', '5m', '1h', '6h', '1d'
    Column("granularity", String(8), nullable=False),
    Column("median_c", Float, nullable=False),
    Column("device_id", String(128), nullable=False),
    Index("temperature_aggregates_bucket_idx", "granularity", "bucket_start"),
    UniqueConstraint(
        "device_id", "granularity", "bucket_start",
        name="temperature_aggregates_device_bucket_uq",
    ),
)


alert_rules = Table(
    "alert_rules",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("device_id", String(128), nullable=False),
    # 'temperature' | 'humidity'
    Column("metric", String(20), nullable=False),
    Column("min_threshold", Float),
    Column("max_threshold", Float),
    Column("start_time", String(5)),  # HH:MM
    Column("end_time", String(5)),  # HH:MM
    Column("start_date", DateTime(timezone=True)),
    Column("end_date", DateTime(timezone=True)),
    Column("days_of_week", JSON),  # 0=domingo ... 6=sábado
    Column("emails", JSON, nullable=False),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("last_triggered_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("alert_rules_device_idx", "device_id"),
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Seguro de llamar varias veces."""
    logger.info("[DB] Ensuring schema exists")
    try:
        metadata.create_all(engine)
    except Exception as e:
        logger.exception("[DB] Schema creation failed: %s", e)
        raise
