"""Fan-out en tiempo real vía Redis pub/sub."""

from .connection import RedisConnection
from .publisher import DEFAULT_CHANNEL_PREFIX, FanoutSink, RedisFanoutSink

__all__ = [
    "RedisConnection",
    "RedisFanoutSink",
    "FanoutSink",
    "DEFAULT_CHANNEL_PREFIX",
]
