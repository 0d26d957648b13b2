"""Dependencias compartidas de los endpoints."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from common.db import get_engine


def get_db_engine() -> Engine:
    """Engine del proceso. Los tests lo reemplazan con dependency_overrides."""
    return get_engine()
