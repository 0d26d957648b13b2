"""Estadísticas de procesamiento."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime

from common.clock import utc_now


@dataclass
class Stats:
    """Contadores del receptor de telemetría.

    Se incrementan desde el hilo de paho y desde los workers de cada carril,
    por eso todas las mutaciones pasan por ``incr``.
    """

    received: int = 0
    accepted: int = 0
    unchanged: int = 0
    malformed: int = 0
    failed: int = 0
    dropped: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=utc_now)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} accepted={self.accepted} "
            f"unchanged={self.unchanged} malformed={self.malformed} failed={self.failed}"
        )

    def incr(self, name: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, name, getattr(self, name) + amount)
            if name == "received":
                self.last_message_at = time.time()

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        with self._lock:
            return {
                "received": self.received,
                "accepted": self.accepted,
                "unchanged": self.unchanged,
                "malformed": self.malformed,
                "failed": self.failed,
                "dropped": self.dropped,
                "last_message_at": self.last_message_at,
                "started_at": self.started_at.isoformat(),
                "success_rate": self._success_rate(),
            }

    def _success_rate(self) -> float:
        """Mensajes válidos procesados sin error de BD."""
        ok = self.accepted + self.unchanged
        total = ok + self.failed
        if total == 0:
            return 1.0
        return ok / total

    def reset(self):
        """Reinicia estadísticas."""
        with self._lock:
            self.received = 0
            self.accepted = 0
            self.unchanged = 0
            self.malformed = 0
            self.failed = 0
            self.dropped = 0
            self.last_message_at = 0
            self.started_at = utc_now()
