"""Endpoints HTTP del servicio."""

from .health import router as health_router
from .queries import router as queries_router

__all__ = ["health_router", "queries_router"]
