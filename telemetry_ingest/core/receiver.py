"""Receptor de telemetría - Punto de entrada principal.

Usa la arquitectura modular:
- transport/   → Cliente MQTT y handler
- adapters/    → Conversión payload → Dominio
- pipeline/    → Change-Gate, persistencia, alertas y fan-out por carriles
- alerts/      → Reglas, calendario, throttle y email
- fanout/      → Publicación en tiempo real vía Redis
- monitoring/  → Stats, health y métricas
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.engine import Engine

from common.config import Settings, get_settings
from common.db import get_engine
from common.schema import ensure_schema

from .alerts.evaluator import AlertRuleEvaluator
from .alerts.notification_service import ResendEmailSink
from .fanout.connection import RedisConnection
from .fanout.publisher import RedisFanoutSink
from .monitoring.health import ReceiverHealthChecker
from .monitoring.stats import Stats
from .pipeline.dispatcher import DeviceLaneDispatcher
from .pipeline.processor import ReadingProcessor
from .storage.alert_rule_repository import AlertRuleRepository
from .storage.device_registry import DeviceRegistry
from .storage.reading_store import ReadingStore
from .transport.message_handler import MessageHandler
from .transport.mqtt_client import MQTTClient

logger = logging.getLogger(__name__)


class TelemetryReceiver:
    """Receptor MQTT de telemetría.

    Componentes:
    - MQTTClient: Conexión y suscripción MQTT
    - MessageHandler: Parseo, validación y delegación
    - DeviceLaneDispatcher: Orden por dispositivo, paralelismo entre dispositivos
    - ReadingProcessor: Pipeline de procesamiento
    - RedisFanoutSink: Broadcast en tiempo real (opcional)
    """

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[Engine] = None):
        self._settings = settings or get_settings()
        self._engine = engine
        self._mqtt: Optional[MQTTClient] = None
        self._handler: Optional[MessageHandler] = None
        self._dispatcher: Optional[DeviceLaneDispatcher] = None
        self._redis: Optional[RedisConnection] = None
        self._health: Optional[ReceiverHealthChecker] = None
        self._running = False

    def build_handler(self) -> MessageHandler:
        """Arma el pipeline completo sin conectar al broker."""
        s = self._settings
        if self._engine is None:
            self._engine = get_engine(s)
        ensure_schema(self._engine)

        # Redis es opcional: sin conexión no hay fan-out
        self._redis = RedisConnection(s.redis_url)
        fanout = None
        if self._redis.connect():
            fanout = RedisFanoutSink(self._redis, s.fanout_channel_prefix)

        evaluator = AlertRuleEvaluator(
            AlertRuleRepository(self._engine),
            ResendEmailSink(s.resend_api_key, s.alert_email_from, api_url=s.resend_api_url),
            tz=ZoneInfo(s.alert_timezone),
        )
        processor = ReadingProcessor(
            ReadingStore(self._engine),
            evaluator,
            fanout=fanout,
            registry=DeviceRegistry(self._engine),
        )

        self._handler = MessageHandler(processor)
        self._dispatcher = DeviceLaneDispatcher(
            self._handler.process_reading,
            num_lanes=s.ingest_num_lanes,
            max_queue_size=s.ingest_queue_size,
        )
        self._handler.attach_dispatcher(self._dispatcher)
        self._health = ReceiverHealthChecker(self._engine, self._redis)
        return self._handler

    def start(self) -> bool:
        """Inicia el receptor."""
        s = self._settings
        handler = self.build_handler()
        self._dispatcher.start()

        self._mqtt = MQTTClient(
            broker_host=s.mqtt_broker_host,
            broker_port=s.mqtt_broker_port,
            username=s.mqtt_username,
            password=s.mqtt_password,
            topic=s.mqtt_telemetry_topic,
        )
        self._mqtt.set_message_handler(handler.handle)

        if not self._mqtt.connect():
            logger.error("[RECEIVER] MQTT connection failed")
            self._dispatcher.stop(drain=False)
            if self._redis:
                self._redis.disconnect()
            return False

        self._running = True
        logger.info("[RECEIVER] Started successfully topic=%s", s.mqtt_telemetry_topic)
        return True

    def stop(self):
        """Detiene el receptor drenando los carriles."""
        self._running = False

        if self._mqtt:
            self._mqtt.disconnect()

        if self._dispatcher:
            self._dispatcher.stop(drain=True)

        if self._redis:
            self._redis.disconnect()

        if self._handler:
            logger.info("[RECEIVER] Stopped. %s", self._handler.stats)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._mqtt.is_connected if self._mqtt else False

    @property
    def stats(self) -> dict:
        handler_stats = self._handler.stats if self._handler else Stats()
        return {
            "running": self._running,
            "connected": self.is_connected,
            "redis_connected": self._redis.is_connected if self._redis else False,
            "lanes": self._dispatcher.metrics if self._dispatcher else None,
            **handler_stats.to_dict(),
        }

    def health_check(self) -> dict:
        if not self._health or not self._handler:
            return {"healthy": False, "reason": "Not initialized"}

        status = self._health.get_status(
            mqtt_connected=self.is_connected,
            stats=self._handler.stats,
            lane_metrics=self._dispatcher.metrics if self._dispatcher else None,
        )
        return {**status.to_dict(), "stats": self.stats}


# Singleton
_receiver: Optional[TelemetryReceiver] = None


def get_receiver() -> Optional[TelemetryReceiver]:
    return _receiver


def start_receiver(settings: Optional[Settings] = None) -> bool:
    """Inicia el receptor singleton."""
    global _receiver

    if _receiver is not None:
        return _receiver.is_running

    _receiver = TelemetryReceiver(settings)
    if not _receiver.start():
        # Sin singleton colgado: el próximo intento arma un receptor nuevo
        _receiver = None
        return False
    return True


def stop_receiver():
    """Detiene el receptor singleton."""
    global _receiver

    if _receiver is not None:
        _receiver.stop()
        _receiver = None


def main() -> int:
    """Receptor standalone (sin API HTTP)."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    if not start_receiver():
        return 1

    stop_event = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    signal.signal(signal.SIGTERM, lambda *_: stop_event.set())
    stop_event.wait()

    stop_receiver()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
