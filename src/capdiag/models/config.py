"""
Configuration data models.

This module contains the configuration structures loaded from `config.toml`:
analysis thresholds, decoder invocation, scheduling, discovery and output.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

# Base priority of a normally scheduled process ("Normal" priority class).
EXPECTED_BASE_PRIORITY = 8


@dataclass
class AnalysisConfig:
    """
    Scoring thresholds and workload selection, from `[analysis]`.
    """

    # Regex matched (case-insensitively) against process instance labels.
    target_process_pattern: str = "sqlservr"
    # Pseudo-instances that never become per-process series.
    excluded_instances: List[str] = field(default_factory=lambda: ["_Total", "Idle"])
    contention_critical_threshold: float = 0.7
    contention_warning_threshold: float = 0.4
    kernel_user_ratio_threshold: float = 0.3
    memory_leak_threshold_mb: float = 0.5
    min_regression_samples: int = 10
    expected_base_priority: int = EXPECTED_BASE_PRIORITY
    low_fidelity_threshold_seconds: float = 15.0


@dataclass
class DecoderConfig:
    """
    How the external capture decoder is located and invoked, from `[decoder]`.
    """

    # Explicit binary path; resolved from PATH via `executable_name` when None.
    binary: Optional[Path] = None
    executable_name: str = "relog"
    output_format: str = "CSV"
    timeout_seconds: float = 300.0
    # Number of decoder output lines attached to a ConversionError.
    diagnostic_lines: int = 10
    use_counter_filter: bool = True


@dataclass
class SchedulerConfig:
    """
    Worker pool sizing, from `[scheduler]`.
    """

    max_concurrency: int = 4
    poll_interval_seconds: float = 0.5
    thread_name_prefix: str = "CaptureWorker"
    shutdown_timeout: float = 10.0


@dataclass
class DiscoveryConfig:
    """
    Where capture files come from, from `[discovery]`.
    """

    source_root: Path = Path("captures")
    patterns: List[str] = field(default_factory=lambda: ["*.blg"])
    # Shared scratch directory for staged copies; system temp dir when None.
    work_dir: Optional[Path] = None


@dataclass
class OutputConfig:
    """
    Fleet summary sink settings, from `[output]`.
    """

    output_dir: Path = Path("reports")
    summary_format: str = "parquet"
    compression: str = "snappy"
    write_capture_reports: bool = True


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
