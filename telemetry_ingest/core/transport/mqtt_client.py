"""Cliente MQTT para recepción de telemetría."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "heatsync/telemetry"


class MQTTClient:
    """Cliente MQTT ligero para recepción de lecturas.

    Responsabilidades:
    - Conexión/desconexión a broker MQTT
    - Suscripción al topic de telemetría (QoS 1)
    - Delegación de mensajes a handler
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        topic: str = DEFAULT_TOPIC,
        client_id: str = "heatsync-ingest",
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.topic = topic
        self.client_id = f"{client_id}-{int(time.time())}"

        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._message_handler: Optional[Callable[[str, bytes], None]] = None

    def set_message_handler(self, handler: Callable[[str, bytes], None]):
        self._message_handler = handler

    def connect(self) -> bool:
        """Conecta al broker MQTT y espera hasta 5s el CONNACK."""
        try:
            self._client = mqtt.Client(
                client_id=self.client_id,
                protocol=mqtt.MQTTv311,
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            )

            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.on_message = self._on_message

            if self.username and self.password:
                self._client.username_pw_set(self.username, self.password)

            logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)
            self._client.connect(self.broker_host, self.broker_port, keepalive=60)
            self._client.loop_start()

            for _ in range(50):
                if self._connected:
                    return True
                time.sleep(0.1)

            logger.error("[MQTT] Connection timeout")
            return False

        except (OSError, ValueError) as e:
            logger.error("[MQTT] Connection failed: %s", e)
            return False

    def disconnect(self):
        if self._client:
            try:
                self._client.loop_stop()
                self._client.disconnect()
            except (OSError, ValueError) as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        # Con VERSION2, rc es un ReasonCode
        if not rc.is_failure:
            self._connected = True
            logger.info("[MQTT] Connected to broker")
            # Se re-suscribe en cada reconexión
            client.subscribe(self.topic, qos=1)
            logger.info("[MQTT] Subscribed to %s", self.topic)
        else:
            self._connected = False
            logger.error("[MQTT] Connection failed: rc=%s", rc)

    def _on_disconnect(self, client, userdata, flags, rc, properties=None):
        self._connected = False
        logger.warning("[MQTT] Disconnected (rc=%s)", rc)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler."""
        if self._message_handler:
            self._message_handler(msg.topic, msg.payload)

    @property
    def is_connected(self) -> bool:
        return self._connected
