"""
Sample stream reading.

Converts a normalized counter table into typed series: values become floats
(None where the decoder wrote something unparsable), timestamps become
datetimes, and each column is attached to its host, instance and metric kind.
The result exposes the capture both per interval and per counter, plus the
sampling-fidelity check.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import polars as pl

from ..classification import DEFAULT_AGGREGATE_INSTANCES, is_aggregate_instance
from ..models.capture import (
    CounterPath,
    CounterSeries,
    IntervalReading,
    MetricKind,
    Sample,
)
from ..normalizer.capture_normalizer import TIMESTAMP_COLUMN, NormalizedCapture

logger = logging.getLogger(__name__)

UNKNOWN_HOST = "Unknown"

# Timestamp layouts written by the decoder's CSV/TSV output.
TIMESTAMP_FORMATS = (
    "%m/%d/%Y %H:%M:%S%.f",
    "%m/%d/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S%.f",
    "%Y-%m-%d %H:%M:%S",
)


@dataclass
class CaptureSeries:
    """
    Typed view of one capture.

    ``series`` holds one CounterSeries per recognized column, keyed by
    (instance label or None, MetricKind). Aggregate pseudo-instances are kept
    apart in ``host_totals``.
    """

    host_name: str
    timestamps: List[Optional[datetime]]
    scheduling_pressure: CounterSeries
    disk_throughput: CounterSeries
    process_series_map: Dict[Tuple[str, MetricKind], CounterSeries] = field(default_factory=dict)
    host_totals: Dict[MetricKind, CounterSeries] = field(default_factory=dict)
    counter_paths: Dict[str, CounterPath] = field(default_factory=dict)
    # Parsed values of every recognized column, before merging into series.
    column_values: Dict[str, List[Optional[float]]] = field(default_factory=dict)
    fidelity_seconds: float = 0.0
    low_fidelity: bool = False
    dedup_hits: int = 0

    @property
    def interval_count(self) -> int:
        return len(self.timestamps)

    @property
    def process_instances(self) -> List[str]:
        """Per-process instance labels in first-seen column order."""
        seen: Dict[str, None] = {}
        for instance, _ in self.process_series_map:
            seen.setdefault(instance, None)
        return list(seen)

    def process_series(self, instance: str, kind: MetricKind) -> CounterSeries:
        """Series of one process metric; an all-gap series when absent."""
        existing = self.process_series_map.get((instance, kind))
        if existing is not None:
            return existing
        return CounterSeries(
            host=self.host_name, instance=instance, kind=kind,
            values=[None] * self.interval_count,
        )

    def iter_intervals(self) -> Iterator[IntervalReading]:
        """Yield everything read at each capture interval, in temporal order."""
        for index, timestamp in enumerate(self.timestamps):
            reading = IntervalReading(
                index=index,
                timestamp=timestamp,
                scheduling_pressure=_at(self.scheduling_pressure, index),
                disk_throughput=_at(self.disk_throughput, index),
                host_totals={kind: _at(s, index) for kind, s in self.host_totals.items()},
            )
            for (instance, kind), series in self.process_series_map.items():
                reading.processes.setdefault(instance, {})[kind] = _at(series, index)
            yield reading

    def samples(self) -> Iterator[Sample]:
        """Flat stream of every recognized sample, column by column."""
        for column, values in self.column_values.items():
            path = self.counter_paths[column]
            for index, value in enumerate(values):
                yield Sample(path, self.timestamps[index], value)


def _at(series: CounterSeries, index: int) -> Optional[float]:
    return series.values[index] if index < len(series.values) else None


def resolve_host_name(paths: Iterable[CounterPath]) -> str:
    """Host embedded in the first counter path that names one, else "Unknown"."""
    for path in paths:
        if path.host:
            return path.host
    return UNKNOWN_HOST


def compute_fidelity(timestamps: Sequence[Optional[datetime]]) -> float:
    """
    Average seconds between consecutive valid timestamps.

    Fewer than two valid timestamps leaves fidelity undefined, reported as 0.0.
    """
    valid = [t for t in timestamps if t is not None]
    if len(valid) < 2:
        return 0.0
    gaps = [(b - a).total_seconds() for a, b in zip(valid, valid[1:])]
    return sum(gaps) / len(gaps)


class SampleStreamReader:
    """
    Builds a CaptureSeries from a NormalizedCapture.

    Stateless apart from its settings; safe to share between worker threads.
    """

    def __init__(
        self,
        aggregate_instances: Sequence[str] = DEFAULT_AGGREGATE_INSTANCES,
        low_fidelity_threshold_seconds: float = 15.0,
    ):
        self.aggregate_instances = tuple(aggregate_instances)
        self.low_fidelity_threshold_seconds = low_fidelity_threshold_seconds

    def read(self, normalized: NormalizedCapture, source: str = "") -> CaptureSeries:
        """
        Parse values and timestamps and assemble the per-counter series.

        Args:
            normalized: Output of the capture normalizer
            source: Capture name used in log messages
        """
        frame = normalized.frame
        counters = normalized.counters
        recognized = {c: p for c, p in counters.items() if p.is_recognized}

        typed = frame.select(
            [_parse_timestamp_expr()]
            + [
                pl.col(column).str.strip_chars().cast(pl.Float64, strict=False).alias(column)
                for column in recognized
            ]
        )
        timestamps = typed.get_column(TIMESTAMP_COLUMN).to_list()
        interval_count = len(timestamps)

        host_name = resolve_host_name(counters.values())
        empty = [None] * interval_count
        scheduling = CounterSeries(host_name, None, MetricKind.SCHEDULING_PRESSURE, list(empty))
        disk = CounterSeries(host_name, None, MetricKind.DISK_THROUGHPUT, list(empty))
        process_series: Dict[Tuple[str, MetricKind], CounterSeries] = {}
        host_totals: Dict[MetricKind, CounterSeries] = {}
        column_values: Dict[str, List[Optional[float]]] = {}

        for column, path in recognized.items():
            values = [_finite(v) for v in typed.get_column(column).to_list()]
            column_values[column] = values
            if path.kind is MetricKind.SCHEDULING_PRESSURE:
                _merge_into(scheduling, values)
            elif path.kind is MetricKind.DISK_THROUGHPUT:
                _merge_into(disk, values)
            elif is_aggregate_instance(path.instance, self.aggregate_instances):
                totals = host_totals.setdefault(
                    path.kind, CounterSeries(host_name, path.instance, path.kind, list(empty))
                )
                _merge_into(totals, values)
            else:
                key = (path.instance, path.kind)
                existing = process_series.get(key)
                if existing is None:
                    process_series[key] = CounterSeries(host_name, path.instance, path.kind, list(values))
                else:
                    _merge_into(existing, values)

        fidelity = compute_fidelity(timestamps)
        low_fidelity = fidelity > self.low_fidelity_threshold_seconds
        if low_fidelity:
            logger.warning(
                f"{source or host_name}: average sampling interval {fidelity:.1f}s exceeds "
                f"{self.low_fidelity_threshold_seconds:.0f}s; short bursts may be aliased away"
            )

        logger.debug(
            f"{source or host_name}: {interval_count} intervals, "
            f"{len(process_series)} process series, {len(recognized)}/{len(counters)} counters recognized"
        )

        return CaptureSeries(
            host_name=host_name,
            timestamps=timestamps,
            scheduling_pressure=scheduling,
            disk_throughput=disk,
            process_series_map=process_series,
            host_totals=host_totals,
            counter_paths=dict(counters),
            column_values=column_values,
            fidelity_seconds=round(fidelity, 3),
            low_fidelity=low_fidelity,
            dedup_hits=normalized.dedup_hits,
        )


def _parse_timestamp_expr() -> pl.Expr:
    raw = pl.col(TIMESTAMP_COLUMN).str.strip_chars()
    return pl.coalesce(
        [raw.str.strptime(pl.Datetime("us"), fmt, strict=False) for fmt in TIMESTAMP_FORMATS]
    ).alias(TIMESTAMP_COLUMN)


def _finite(value: Optional[float]) -> Optional[float]:
    # NaN/inf parse as floats but are not usable samples.
    if value is None or value != value or value in (float("inf"), float("-inf")):
        return None
    return value


def _merge_into(series: CounterSeries, values: List[Optional[float]]) -> None:
    """Fill the gaps of ``series`` from ``values``; existing values win."""
    for i, value in enumerate(values):
        if series.values[i] is None and value is not None:
            series.values[i] = value
