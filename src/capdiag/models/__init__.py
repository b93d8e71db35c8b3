"""
Data models for the capture diagnostics pipeline.

Configuration Models:
- Analysis thresholds, decoder, scheduler, discovery and output settings

Capture Models:
- Capture files, classified counter paths, samples and per-counter series
- Per-interval readings consumed by the diagnostic engine

Result Models:
- Per-process summaries and per-host diagnostic records
- Analyzer outcomes and fleet run results
"""

from .config import (
    EXPECTED_BASE_PRIORITY,
    AnalysisConfig,
    AppConfig,
    DecoderConfig,
    DiscoveryConfig,
    OutputConfig,
    SchedulerConfig,
)
from .capture import (
    PROCESS_METRIC_KINDS,
    CaptureFile,
    CounterGeneration,
    CounterPath,
    CounterSeries,
    IntervalReading,
    MetricKind,
    Sample,
)
from .results import (
    CaptureOutcome,
    CaptureState,
    DiagnosticStatus,
    FleetRunResult,
    HostDiagnostic,
    ProcessMetricSummary,
)

__all__ = [
    # Configuration
    "EXPECTED_BASE_PRIORITY",
    "AnalysisConfig",
    "AppConfig",
    "DecoderConfig",
    "DiscoveryConfig",
    "OutputConfig",
    "SchedulerConfig",
    # Capture
    "PROCESS_METRIC_KINDS",
    "CaptureFile",
    "CounterGeneration",
    "CounterPath",
    "CounterSeries",
    "IntervalReading",
    "MetricKind",
    "Sample",
    # Results
    "CaptureOutcome",
    "CaptureState",
    "DiagnosticStatus",
    "FleetRunResult",
    "HostDiagnostic",
    "ProcessMetricSummary",
]
