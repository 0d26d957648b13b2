"""Pipeline - Procesamiento y despacho de lecturas."""

from .dispatcher import DeviceLaneDispatcher
from .processor import ReadingProcessor

__all__ = [
    "DeviceLaneDispatcher",
    "ReadingProcessor",
]
