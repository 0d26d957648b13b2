"""Transport layer - Recepción de datos MQTT."""

from .message_handler import MessageHandler
from .mqtt_client import MQTTClient

__all__ = ["MQTTClient", "MessageHandler"]
