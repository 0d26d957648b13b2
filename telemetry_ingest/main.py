from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from common.config import get_settings
from common.db import get_engine
from common.schema import ensure_schema

from .core.receiver import start_receiver, stop_receiver
from .endpoints import health_router, queries_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    ensure_schema(get_engine(settings))

    if settings.mqtt_ingest_enabled:
        if not start_receiver(settings):
            logger.error("[MAIN] MQTT receiver failed to start; HTTP API keeps running")
    else:
        logger.info("[MAIN] MQTT ingest disabled (MQTT_INGEST_ENABLED=false)")

    yield

    stop_receiver()


app = FastAPI(title="HeatSync Telemetry Service", version="0.1.0", lifespan=lifespan)

app.include_router(health_router)
app.include_router(queries_router)


def run() -> None:
    """Sirve la API con uvicorn (HEATSYNC_API_HOST / HEATSYNC_API_PORT)."""
    settings = get_settings()
    uvicorn.run("telemetry_ingest.main:app", host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
