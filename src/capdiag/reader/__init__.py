"""
Sample stream reading: typed per-interval and per-counter views of a capture.
"""

from .sample_reader import (
    UNKNOWN_HOST,
    CaptureSeries,
    SampleStreamReader,
    compute_fidelity,
    resolve_host_name,
)

__all__ = [
    "UNKNOWN_HOST",
    "CaptureSeries",
    "SampleStreamReader",
    "compute_fidelity",
    "resolve_host_name",
]
