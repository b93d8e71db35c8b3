"""
Configuration validation utilities.

Each section of config.toml is validated into its dataclass. Absent keys keep
their defaults; present keys must be valid.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.config import (
    AnalysisConfig,
    AppConfig,
    DecoderConfig,
    DiscoveryConfig,
    OutputConfig,
    SchedulerConfig,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)
from .loader import resolve_config_path

logger = logging.getLogger(__name__)

SUMMARY_FORMATS = ["parquet", "csv", "json"]
COMPRESSION_CHOICES = ["snappy", "gzip", "brotli", "lz4", "zstd", "uncompressed"]
DECODER_OUTPUT_FORMATS = ["CSV", "TSV"]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValidationError(f"[{name}] must be a table", field_name=name, value=section)
    return section


def validate_analysis_config(settings: Dict[str, Any]) -> AnalysisConfig:
    """
    Validate `[analysis]` settings.

    Raises:
        ValidationError: If a threshold is out of range or the warning
            threshold is not below the critical one
    """
    defaults = AnalysisConfig()

    critical = validate_positive_float(
        settings.get("contention_critical_threshold", defaults.contention_critical_threshold),
        min_value=-1.0,
        max_value=1.0,
        field_name="analysis.contention_critical_threshold",
    )
    warning = validate_positive_float(
        settings.get("contention_warning_threshold", defaults.contention_warning_threshold),
        min_value=-1.0,
        max_value=1.0,
        field_name="analysis.contention_warning_threshold",
    )
    if warning >= critical:
        raise ValidationError(
            "analysis.contention_warning_threshold must be below "
            f"analysis.contention_critical_threshold ({warning} >= {critical})",
            field_name="analysis.contention_warning_threshold",
            value=warning,
        )

    return AnalysisConfig(
        target_process_pattern=validate_regex_pattern(
            settings.get("target_process_pattern", defaults.target_process_pattern),
            field_name="analysis.target_process_pattern",
        ),
        excluded_instances=validate_string_list(
            settings.get("excluded_instances", defaults.excluded_instances),
            field_name="analysis.excluded_instances",
            allow_empty=True,
        ),
        contention_critical_threshold=critical,
        contention_warning_threshold=warning,
        kernel_user_ratio_threshold=validate_positive_float(
            settings.get("kernel_user_ratio_threshold", defaults.kernel_user_ratio_threshold),
            field_name="analysis.kernel_user_ratio_threshold",
        ),
        memory_leak_threshold_mb=validate_positive_float(
            settings.get("memory_leak_threshold_mb", defaults.memory_leak_threshold_mb),
            field_name="analysis.memory_leak_threshold_mb",
        ),
        min_regression_samples=validate_positive_integer(
            settings.get("min_regression_samples", defaults.min_regression_samples),
            min_value=2,
            max_value=100000,
            field_name="analysis.min_regression_samples",
        ),
        expected_base_priority=validate_positive_integer(
            settings.get("expected_base_priority", defaults.expected_base_priority),
            min_value=0,
            max_value=31,
            field_name="analysis.expected_base_priority",
        ),
        low_fidelity_threshold_seconds=validate_positive_float(
            settings.get(
                "low_fidelity_threshold_seconds", defaults.low_fidelity_threshold_seconds
            ),
            min_value=0.001,
            field_name="analysis.low_fidelity_threshold_seconds",
        ),
    )


def validate_decoder_config(settings: Dict[str, Any], config_dir: Path) -> DecoderConfig:
    """Validate `[decoder]` settings."""
    defaults = DecoderConfig()

    executable_name = settings.get("executable_name", defaults.executable_name)
    if not isinstance(executable_name, str) or not executable_name.strip():
        raise ValidationError(
            "decoder.executable_name must be a non-empty string",
            field_name="decoder.executable_name",
            value=executable_name,
        )

    return DecoderConfig(
        binary=resolve_config_path(settings.get("binary"), config_dir),
        executable_name=executable_name.strip(),
        output_format=validate_enum_choice(
            settings.get("output_format", defaults.output_format),
            valid_choices=DECODER_OUTPUT_FORMATS,
            field_name="decoder.output_format",
        ),
        timeout_seconds=validate_positive_float(
            settings.get("timeout_seconds", defaults.timeout_seconds),
            min_value=1.0,
            max_value=86400.0,
            field_name="decoder.timeout_seconds",
        ),
        diagnostic_lines=validate_positive_integer(
            settings.get("diagnostic_lines", defaults.diagnostic_lines),
            min_value=1,
            max_value=1000,
            field_name="decoder.diagnostic_lines",
        ),
        use_counter_filter=validate_boolean(
            settings.get("use_counter_filter", defaults.use_counter_filter),
            field_name="decoder.use_counter_filter",
        ),
    )


def validate_scheduler_config(settings: Dict[str, Any]) -> SchedulerConfig:
    """Validate `[scheduler]` settings."""
    defaults = SchedulerConfig()

    thread_name_prefix = settings.get("thread_name_prefix", defaults.thread_name_prefix)
    if not isinstance(thread_name_prefix, str) or not thread_name_prefix.strip():
        raise ValidationError(
            "scheduler.thread_name_prefix must be a non-empty string",
            field_name="scheduler.thread_name_prefix",
            value=thread_name_prefix,
        )

    return SchedulerConfig(
        max_concurrency=validate_positive_integer(
            settings.get("max_concurrency", defaults.max_concurrency),
            min_value=1,
            max_value=256,
            field_name="scheduler.max_concurrency",
        ),
        poll_interval_seconds=validate_positive_float(
            settings.get("poll_interval_seconds", defaults.poll_interval_seconds),
            min_value=0.01,
            max_value=60.0,
            field_name="scheduler.poll_interval_seconds",
        ),
        thread_name_prefix=thread_name_prefix,
        shutdown_timeout=validate_positive_float(
            settings.get("shutdown_timeout", defaults.shutdown_timeout),
            min_value=0.1,
            max_value=600.0,
            field_name="scheduler.shutdown_timeout",
        ),
    )


def validate_discovery_config(settings: Dict[str, Any], config_dir: Path) -> DiscoveryConfig:
    """Validate `[discovery]` settings. The source root is not required to exist yet."""
    defaults = DiscoveryConfig()

    source_root: Optional[Path] = resolve_config_path(settings.get("source_root"), config_dir)

    return DiscoveryConfig(
        source_root=source_root or defaults.source_root,
        patterns=validate_string_list(
            settings.get("patterns", defaults.patterns),
            field_name="discovery.patterns",
        ),
        work_dir=resolve_config_path(settings.get("work_dir"), config_dir),
    )


def validate_output_config(settings: Dict[str, Any], config_dir: Path) -> OutputConfig:
    """Validate `[output]` settings."""
    defaults = OutputConfig()

    output_dir = resolve_config_path(settings.get("output_dir"), config_dir)

    return OutputConfig(
        output_dir=output_dir or defaults.output_dir,
        summary_format=validate_enum_choice(
            settings.get("summary_format", defaults.summary_format),
            valid_choices=SUMMARY_FORMATS,
            field_name="output.summary_format",
        ),
        compression=validate_enum_choice(
            settings.get("compression", defaults.compression),
            valid_choices=COMPRESSION_CHOICES,
            field_name="output.compression",
        ),
        write_capture_reports=validate_boolean(
            settings.get("write_capture_reports", defaults.write_capture_reports),
            field_name="output.write_capture_reports",
        ),
    )


def validate_app_config(data: Dict[str, Any], config_dir: Path) -> AppConfig:
    """
    Validate a full parsed config.toml into an AppConfig.

    Args:
        data: Parsed TOML data
        config_dir: Directory of the config file, for relative paths

    Raises:
        ValidationError: If any section is invalid
    """
    app_config = AppConfig(
        analysis=validate_analysis_config(_section(data, "analysis")),
        decoder=validate_decoder_config(_section(data, "decoder"), config_dir),
        scheduler=validate_scheduler_config(_section(data, "scheduler")),
        discovery=validate_discovery_config(_section(data, "discovery"), config_dir),
        output=validate_output_config(_section(data, "output"), config_dir),
    )
    logger.debug(f"Validated configuration: {app_config}")
    return app_config
