"""Despacho por carriles: desacopla el callback de paho del procesamiento.

Cada dispositivo se enruta siempre al mismo carril (CRC32 del device_id),
y cada carril tiene una cola acotada drenada por un único worker. Así se
conserva el orden de llegada por dispositivo mientras dispositivos
distintos avanzan en paralelo.
"""

from __future__ import annotations

import logging
import queue
import threading
import zlib
from typing import Callable, List

from ..domain.reading import Reading
from ..monitoring.metrics import READINGS_TOTAL

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
DEFAULT_NUM_LANES = 4


class DeviceLaneDispatcher:
    """Colas por carril + un hilo por carril.

    - callback de paho → submit() retorna de inmediato
    - worker del carril → process() bloquea en la BD
    - Cola acotada: si está llena el mensaje se descarta (backpressure)
    """

    def __init__(
        self,
        process: Callable[[Reading], object],
        num_lanes: int = DEFAULT_NUM_LANES,
        max_queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        if num_lanes < 1:
            raise ValueError("num_lanes must be >= 1")
        self._process = process
        self._queues: List[queue.Queue] = [
            queue.Queue(maxsize=max_queue_size) for _ in range(num_lanes)
        ]
        self._stop_event = threading.Event()

        # Metrics
        self._enqueued = 0
        self._dropped = 0
        self._processed = 0
        self._errors = 0
        self._lock = threading.Lock()

        self._workers: list[threading.Thread] = []

    @property
    def num_lanes(self) -> int:
        return len(self._queues)

    def lane_for(self, device_id: str) -> int:
        return zlib.crc32(device_id.encode("utf-8")) % len(self._queues)

    def start(self) -> None:
        """Arranca un worker por carril."""
        self._stop_event.clear()
        for i, lane in enumerate(self._queues):
            t = threading.Thread(
                target=self._worker_loop,
                args=(i, lane),
                daemon=True,
                name=f"telemetry-lane-{i}",
            )
            t.start()
            self._workers.append(t)
        logger.info(
            "[LANES] Started lanes=%d queue_max=%d",
            len(self._queues), self._queues[0].maxsize,
        )

    def stop(self, drain: bool = True) -> None:
        """Detiene los workers. Con drain=True procesa lo pendiente antes."""
        if drain:
            for lane in self._queues:
                lane.join()
        self._stop_event.set()
        for t in self._workers:
            t.join(timeout=5.0)
        self._workers.clear()
        logger.info("[LANES] Stopped. %s", self.metrics)

    def submit(self, device_id: str, reading: Reading) -> bool:
        """Encola la lectura en el carril del dispositivo. False si está lleno."""
        lane = self.lane_for(device_id)
        try:
            self._queues[lane].put_nowait(reading)
        except queue.Full:
            with self._lock:
                self._dropped += 1
            READINGS_TOTAL.labels(status="dropped").inc()
            logger.warning("[LANES] Lane %d full, dropped device=%s", lane, device_id)
            return False
        with self._lock:
            self._enqueued += 1
        return True

    def _worker_loop(self, lane_id: int, lane: queue.Queue) -> None:
        while not self._stop_event.is_set():
            try:
                reading = lane.get(timeout=1.0)
            except queue.Empty:
                continue

            try:
                self._process(reading)
                with self._lock:
                    self._processed += 1
            except Exception as e:
                with self._lock:
                    self._errors += 1
                logger.error("[LANES] Lane %d error: %s", lane_id, e)
            finally:
                lane.task_done()

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "lanes": len(self._queues),
                "queue_depths": [q.qsize() for q in self._queues],
                "queue_max": self._queues[0].maxsize,
                "enqueued": self._enqueued,
                "dropped": self._dropped,
                "processed": self._processed,
                "errors": self._errors,
            }
