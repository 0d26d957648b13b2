"""Agregación de lecturas en buckets de mediana."""

from .aggregator import Aggregator
from .buckets import BUCKET_SECONDS, bucket_start, bucket_width, compute_buckets

__all__ = [
    "Aggregator",
    "BUCKET_SECONDS",
    "bucket_start",
    "bucket_width",
    "compute_buckets",
]
