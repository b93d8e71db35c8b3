"""
Capture normalization: staging, decoding and namespace de-duplication.
"""

from .capture_normalizer import (
    TIMESTAMP_COLUMN,
    CaptureNormalizer,
    NormalizedCapture,
    deduplicate_counters,
    safe_token,
)

__all__ = [
    "TIMESTAMP_COLUMN",
    "CaptureNormalizer",
    "NormalizedCapture",
    "deduplicate_counters",
    "safe_token",
]
