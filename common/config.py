from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str

    api_host: str
    api_port: int

    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_username: str | None
    mqtt_password: str | None
    mqtt_telemetry_topic: str
    mqtt_ingest_enabled: bool

    ingest_num_lanes: int
    ingest_queue_size: int

    redis_url: str
    fanout_channel_prefix: str

    resend_api_key: str | None
    resend_api_url: str
    alert_email_from: str
    alert_timezone: str


def get_settings() -> Settings:
    # El .env es opcional; las variables reales del entorno siempre ganan.
    env_file = os.getenv("HEATSYNC_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./heatsync.db"),
        api_host=os.getenv("HEATSYNC_API_HOST", "0.0.0.0"),
        api_port=int(os.getenv("HEATSYNC_API_PORT", "8000")),
        mqtt_broker_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_broker_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_telemetry_topic=os.getenv("MQTT_TELEMETRY_TOPIC", "heatsync/telemetry"),
        mqtt_ingest_enabled=_as_bool(os.getenv("MQTT_INGEST_ENABLED", "false")),
        ingest_num_lanes=max(1, int(os.getenv("INGEST_NUM_LANES", "4"))),
        ingest_queue_size=max(1, int(os.getenv("INGEST_QUEUE_SIZE", "1000"))),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        fanout_channel_prefix=os.getenv("FANOUT_CHANNEL_PREFIX", "heatsync:device:"),
        resend_api_key=os.getenv("RESEND_API_KEY") or None,
        resend_api_url=os.getenv("RESEND_API_URL", "https://api.resend.com/emails"),
        # Remitente por defecto de Resend
        alert_email_from=os.getenv("ALERT_EMAIL_FROM", "HeatSync Alerts <onboarding@resend.dev>"),
        alert_timezone=os.getenv("ALERT_TIMEZONE", "UTC"),
    )
