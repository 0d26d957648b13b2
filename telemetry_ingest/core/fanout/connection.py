"""Conexión a Redis para el fan-out en tiempo real."""

from __future__ import annotations

import logging
from typing import Optional

import redis

logger = logging.getLogger(__name__)


class RedisConnection:
    """Gestiona la conexión a Redis."""

    def __init__(self, url: str = "redis://localhost:6379/0"):
        self._url = url
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> bool:
        """Conecta a Redis. Un fallo deja el fan-out deshabilitado."""
        try:
            self._client = redis.Redis.from_url(
                self._url,
                decode_responses=True,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
            )
            self._client.ping()
            self._connected = True
            logger.info("[REDIS] Connected: %s", self._url.split("@")[-1])
            return True
        except redis.RedisError as e:
            self._connected = False
            logger.warning("[REDIS] Connection failed: %s", e)
            return False

    def disconnect(self):
        """Desconecta de Redis."""
        if self._client:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.debug("[REDIS] Close error: %s", e)
        self._client = None
        self._connected = False
