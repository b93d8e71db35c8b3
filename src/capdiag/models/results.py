"""
Diagnostic result data models.

This module defines what a capture analysis produces: per-process summaries,
the per-host diagnostic record that lands in the fleet summary, the outcome of
one analyzer run and the aggregate result of a fleet run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .capture import CaptureFile


class DiagnosticStatus(Enum):
    """Host health classification."""

    HEALTHY = "Healthy"
    WARNING = "Warning"
    CRITICAL = "Critical"
    DATA_MISSING = "DataMissing"


class CaptureState(Enum):
    """Stages a capture passes through inside the analyzer."""

    DISCOVERED = "Discovered"
    COPIED = "Copied"
    NORMALIZED = "Normalized"
    PARSED = "Parsed"
    SCORED = "Scored"
    EMITTED = "Emitted"
    SKIPPED = "Skipped"
    FAILED = "Failed"


@dataclass(frozen=True)
class ProcessMetricSummary:
    """
    Aggregated metrics for one process instance of one capture.

    ``instance`` is the counter instance label (e.g. "sqlservr" or
    "sqlservr#1"), not an OS process id.
    """

    instance: str
    avg_cpu: float
    kernel_user_ratio: float
    memory_slope_bytes: float
    memory_slope_mb: float
    peak_memory_bytes: float
    avg_base_priority: float
    priority_deviation: int
    is_target: bool
    kernel_interference: bool = False
    memory_leak_suspected: bool = False

    @property
    def priority_deviates(self) -> bool:
        return self.priority_deviation != 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instance": self.instance,
            "avg_cpu": self.avg_cpu,
            "kernel_user_ratio": self.kernel_user_ratio,
            "memory_slope_bytes": self.memory_slope_bytes,
            "memory_slope_mb": self.memory_slope_mb,
            "peak_memory_bytes": self.peak_memory_bytes,
            "avg_base_priority": self.avg_base_priority,
            "priority_deviation": self.priority_deviation,
            "is_target": self.is_target,
            "kernel_interference": self.kernel_interference,
            "memory_leak_suspected": self.memory_leak_suspected,
        }


@dataclass(frozen=True)
class HostDiagnostic:
    """
    One fleet-summary row: the diagnosis of one analyzed capture.

    Records are identified by ``(host_name, source_file)``.
    """

    host_name: str
    source_file: str
    report_file_name: str
    contention_score: float
    fidelity_seconds: float
    status: DiagnosticStatus
    interval_count: int = 0
    low_fidelity: bool = False
    dedup_hits: int = 0
    findings: Tuple[str, ...] = ()
    process_summaries: Tuple[ProcessMetricSummary, ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.host_name, self.source_file)

    def to_row(self) -> Dict[str, Any]:
        """Flat representation used for the consolidated summary table."""
        return {
            "host_name": self.host_name,
            "source_file": self.source_file,
            "report_file_name": self.report_file_name,
            "contention_score": self.contention_score,
            "fidelity_seconds": self.fidelity_seconds,
            "status": self.status.value,
            "interval_count": self.interval_count,
            "low_fidelity": self.low_fidelity,
            "dedup_hits": self.dedup_hits,
            "findings": "; ".join(self.findings),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Detailed representation used for per-capture reports."""
        data = self.to_row()
        data["findings"] = list(self.findings)
        data["processes"] = [p.to_dict() for p in self.process_summaries]
        return data


@dataclass
class CaptureOutcome:
    """What the analyzer produced for one capture: a record, or a reason there is none."""

    capture: CaptureFile
    state: CaptureState
    record: Optional[HostDiagnostic] = None
    reason: Optional[str] = None
    trail: List[CaptureState] = field(default_factory=list)
    dedup_hits: int = 0

    @property
    def emitted(self) -> bool:
        return self.state is CaptureState.EMITTED and self.record is not None


@dataclass
class FleetRunResult:
    """Aggregate result of scheduling every discovered capture."""

    records: List[HostDiagnostic]
    outcomes: List[CaptureOutcome]
    elapsed_seconds: float = 0.0
    summary_path: Optional[str] = None

    @property
    def analyzed_count(self) -> int:
        return len(self.records)

    @property
    def skipped_count(self) -> int:
        return sum(1 for o in self.outcomes if o.state is CaptureState.SKIPPED)

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.state is CaptureState.FAILED)

    @property
    def dedup_hits(self) -> int:
        return sum(o.dedup_hits for o in self.outcomes)
