"""
capdiag: fleet-wide performance capture diagnostics.

Analyzes a tree of binary performance-counter captures collected from many
hosts, detects hypervisor CPU contention and per-process anomalies, and writes
one consolidated summary of per-host diagnostic records.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Error taxonomy, input validation and error handling
- system: Decoder subprocess execution and CPU discovery
- classification: Counter path parsing and metric classification
- discovery: Capture file discovery
- normalizer: Staging, decoding and counter de-duplication
- reader: Typed sample series from decoded captures
- diagnostics: Pure scoring functions
- analysis: Per-capture state machine
- executor: Worker pool and parallel scheduler
- storage: Fleet summary and report output
- cli: Command-line interface and orchestration

Usage:
    From command line:
        capdiag --source /data/captures --max-concurrency 8

    Programmatically:
        from capdiag import FleetRunner, get_config
        result = FleetRunner(get_config()).run()
"""

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .cli.orchestrator import FleetRunner
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    CaptureFile,
    CaptureOutcome,
    DiagnosticStatus,
    FleetRunResult,
    HostDiagnostic,
    MetricKind,
)

# Pipeline components
from .analysis import CaptureAnalyzer
from .classification import parse_counter_path
from .discovery import discover_capture_files
from .executor import ParallelWorkScheduler
from .normalizer import CaptureNormalizer
from .reader import SampleStreamReader
from .storage import FleetSummaryWriter

# Validation utilities
from .validation import CaptureError, ValidationError

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "FleetRunner",
    "main_cli",
    # Models
    "AppConfig",
    "CaptureFile",
    "CaptureOutcome",
    "DiagnosticStatus",
    "FleetRunResult",
    "HostDiagnostic",
    "MetricKind",
    # Pipeline
    "CaptureAnalyzer",
    "parse_counter_path",
    "discover_capture_files",
    "ParallelWorkScheduler",
    "CaptureNormalizer",
    "SampleStreamReader",
    "FleetSummaryWriter",
    # Validation
    "CaptureError",
    "ValidationError",
]
