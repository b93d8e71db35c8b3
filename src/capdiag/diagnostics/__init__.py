"""
Diagnostic engine: correlation, trend, ratio and threshold classification.
"""

from .engine import (
    BYTES_PER_MB,
    DiagnosticThresholds,
    aggregate_target_cpu,
    bytes_to_mb,
    classify_contention,
    contention_score,
    is_target_instance,
    kernel_user_ratio,
    linear_regression_slope,
    mean,
    memory_slope,
    priority_deviation,
    round_half_up,
    summarize_process,
)

__all__ = [
    "BYTES_PER_MB",
    "DiagnosticThresholds",
    "aggregate_target_cpu",
    "bytes_to_mb",
    "classify_contention",
    "contention_score",
    "is_target_instance",
    "kernel_user_ratio",
    "linear_regression_slope",
    "mean",
    "memory_slope",
    "priority_deviation",
    "round_half_up",
    "summarize_process",
]
