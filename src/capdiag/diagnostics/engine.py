"""
Diagnostic scoring functions.

Everything here is pure: functions take completed series and return numbers or
classifications, never raise on degenerate input, and give identical results
for identical input. Missing samples (None) are excluded, not treated as zero.
"""

import math
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple, Union

import polars as pl

from ..models.capture import CounterSeries
from ..models.config import EXPECTED_BASE_PRIORITY, AnalysisConfig
from ..models.results import DiagnosticStatus, ProcessMetricSummary

BYTES_PER_MB = 1024 * 1024

MaybeValues = Sequence[Optional[float]]


@dataclass(frozen=True)
class DiagnosticThresholds:
    """Classification thresholds; see AnalysisConfig for the config keys."""

    contention_critical: float = 0.7
    contention_warning: float = 0.4
    kernel_user_ratio: float = 0.3
    memory_leak_mb: float = 0.5
    min_regression_samples: int = 10
    expected_base_priority: int = EXPECTED_BASE_PRIORITY

    @classmethod
    def from_config(cls, analysis: AnalysisConfig) -> "DiagnosticThresholds":
        return cls(
            contention_critical=analysis.contention_critical_threshold,
            contention_warning=analysis.contention_warning_threshold,
            kernel_user_ratio=analysis.kernel_user_ratio_threshold,
            memory_leak_mb=analysis.memory_leak_threshold_mb,
            min_regression_samples=analysis.min_regression_samples,
            expected_base_priority=analysis.expected_base_priority,
        )


def mean(values: MaybeValues) -> Optional[float]:
    """Mean of the present values, None when there are none."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _paired(xs: MaybeValues, ys: MaybeValues) -> pl.DataFrame:
    """Frame of the positions where both series have a value."""
    n = min(len(xs), len(ys))
    return pl.DataFrame(
        {"x": list(xs[:n]), "y": list(ys[:n])},
        schema={"x": pl.Float64, "y": pl.Float64},
    ).drop_nulls()


def contention_score(pressure: MaybeValues, workload_cpu: MaybeValues) -> float:
    """
    Pearson correlation between scheduling pressure and workload CPU.

    Only intervals where both series have a value are paired. Fewer than two
    pairs, or a series without variance, scores 0.0. The result is clamped to
    [-1, 1] and rounded to 3 decimals; swapping the arguments gives the same
    score.
    """
    pairs = _paired(pressure, workload_cpu)
    if pairs.height < 2:
        return 0.0

    stats = pairs.select(
        (pl.col("x").min() == pl.col("x").max()).alias("x_constant"),
        (pl.col("y").min() == pl.col("y").max()).alias("y_constant"),
        pl.corr("x", "y").alias("r"),
    ).row(0, named=True)
    # Constant input: the mean can carry rounding noise, so test directly.
    if stats["x_constant"] or stats["y_constant"]:
        return 0.0

    r = stats["r"]
    if r is None or not math.isfinite(r):
        return 0.0
    return round(max(-1.0, min(1.0, r)), 3)


def classify_contention(
    score: float, thresholds: DiagnosticThresholds = DiagnosticThresholds()
) -> DiagnosticStatus:
    """Critical above the critical threshold, Warning above the warning threshold."""
    if score > thresholds.contention_critical:
        return DiagnosticStatus.CRITICAL
    if score > thresholds.contention_warning:
        return DiagnosticStatus.WARNING
    return DiagnosticStatus.HEALTHY


def kernel_user_ratio(privileged: MaybeValues, user: MaybeValues) -> float:
    """
    Average privileged time over average user time.

    A process with no user time (or no user samples) has a ratio of 0.0.
    """
    avg_user = mean(user)
    if not avg_user:
        return 0.0
    avg_privileged = mean(privileged) or 0.0
    return round(avg_privileged / avg_user, 3)


def linear_regression_slope(points: Sequence[Tuple[float, float]]) -> float:
    """Ordinary least-squares slope of (x, y) points; 0.0 when x has no spread."""
    if len(points) < 2:
        return 0.0
    frame = _paired([p[0] for p in points], [p[1] for p in points])
    stats = frame.select(
        pl.cov("x", "y").alias("sxy"),
        pl.col("x").var().alias("sxx"),
    ).row(0, named=True)
    if not stats["sxx"]:
        return 0.0
    return stats["sxy"] / stats["sxx"]


def memory_slope(values: MaybeValues, min_samples: int = 10) -> float:
    """
    Private-memory trend in bytes per interval.

    Present samples are regressed against their interval index, so gaps do
    not compress the time axis. Fewer than ``min_samples`` present samples
    give 0.0.
    """
    points = [(float(i), v) for i, v in enumerate(values) if v is not None]
    if len(points) < min_samples:
        return 0.0
    return linear_regression_slope(points)


def bytes_to_mb(value: float) -> float:
    return value / BYTES_PER_MB


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def priority_deviation(
    avg_priority: Optional[float], baseline: int = EXPECTED_BASE_PRIORITY
) -> int:
    """Signed difference between the rounded average base priority and the baseline."""
    if avg_priority is None:
        return 0
    return round_half_up(avg_priority) - baseline


def aggregate_target_cpu(
    series: Sequence[Union[CounterSeries, MaybeValues]], length: int
) -> List[Optional[float]]:
    """
    Per-interval sum of CPU across the target process instances.

    An interval where no instance reported a value stays None.
    """
    totals: List[Optional[float]] = [None] * length
    for item in series:
        values = item.values if isinstance(item, CounterSeries) else item
        for i, value in enumerate(values[:length]):
            if value is None:
                continue
            totals[i] = value if totals[i] is None else totals[i] + value
    return totals


def is_target_instance(instance: str, pattern: Union[str, Pattern[str]]) -> bool:
    """True when the instance label matches the target workload pattern."""
    compiled = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    return compiled.search(instance) is not None


def summarize_process(
    instance: str,
    cpu: MaybeValues,
    privileged: MaybeValues,
    user: MaybeValues,
    memory: MaybeValues,
    priority: MaybeValues,
    is_target: bool,
    thresholds: DiagnosticThresholds = DiagnosticThresholds(),
) -> ProcessMetricSummary:
    """Compute the per-process summary and its threshold flags."""
    ku_ratio = kernel_user_ratio(privileged, user)
    slope_bytes = memory_slope(memory, thresholds.min_regression_samples)
    slope_mb = bytes_to_mb(slope_bytes)
    present_memory = [v for v in memory if v is not None]
    avg_priority = mean(priority)

    return ProcessMetricSummary(
        instance=instance,
        avg_cpu=round(mean(cpu) or 0.0, 3),
        kernel_user_ratio=ku_ratio,
        memory_slope_bytes=round(slope_bytes, 3),
        memory_slope_mb=round(slope_mb, 6),
        peak_memory_bytes=max(present_memory) if present_memory else 0.0,
        avg_base_priority=round(avg_priority, 3) if avg_priority is not None else 0.0,
        priority_deviation=priority_deviation(avg_priority, thresholds.expected_base_priority),
        is_target=is_target,
        kernel_interference=ku_ratio > thresholds.kernel_user_ratio,
        memory_leak_suspected=slope_mb > thresholds.memory_leak_mb,
    )
