"""
Per-capture analysis.

Drives one capture file through normalization, reading and scoring and turns
the result into exactly one CaptureOutcome. The capture moves through

    Discovered -> Copied -> Normalized -> Parsed -> Scored -> Emitted

and leaves early as Skipped (recoverable per-file errors) or Failed (anything
unexpected). Only Emitted outcomes carry a HostDiagnostic record.
"""

import hashlib
import logging
import re
from pathlib import PurePosixPath
from typing import List, Optional

from ..diagnostics import (
    DiagnosticThresholds,
    aggregate_target_cpu,
    classify_contention,
    contention_score,
    is_target_instance,
    summarize_process,
)
from ..models.capture import CaptureFile, CounterSeries, MetricKind
from ..models.config import AnalysisConfig
from ..models.results import (
    CaptureOutcome,
    CaptureState,
    DiagnosticStatus,
    HostDiagnostic,
    ProcessMetricSummary,
)
from ..normalizer import CaptureNormalizer, safe_token
from ..reader import CaptureSeries, SampleStreamReader
from ..validation import RECOVERABLE_CAPTURE_ERRORS, DataGapError

logger = logging.getLogger(__name__)

REPORT_EXTENSION = ".json"


def report_file_name(host_name: str, relative_path: str, extension: str = REPORT_EXTENSION) -> str:
    """
    Collision-safe report name for a capture.

    Built from the host, the capture's relative path with separators flattened,
    and a short hash of the relative path. Identical base names in different
    directories therefore never share a report name.

    Examples:
        >>> report_file_name("SQL01", "east/node1/capture.blg")
        'SQL01__east_node1_capture__<8 hex chars>.json'
    """
    stem = PurePosixPath(relative_path).with_suffix("").as_posix().replace("/", "_")
    digest = hashlib.sha1(relative_path.encode("utf-8")).hexdigest()[:8]
    return f"{safe_token(host_name)}__{safe_token(stem, 60)}__{digest}{extension}"


class CaptureAnalyzer:
    """
    Orchestrates normalizer, reader and diagnostic engine for single captures.

    The analyzer keeps no per-capture state; worker threads share one instance.
    """

    def __init__(
        self,
        normalizer: CaptureNormalizer,
        reader: SampleStreamReader,
        analysis_config: Optional[AnalysisConfig] = None,
    ):
        self.normalizer = normalizer
        self.reader = reader
        self.analysis_config = analysis_config or AnalysisConfig()
        self.thresholds = DiagnosticThresholds.from_config(self.analysis_config)
        self._target_re = re.compile(self.analysis_config.target_process_pattern, re.IGNORECASE)

    def analyze(self, capture: CaptureFile) -> CaptureOutcome:
        """
        Analyze one capture. Never raises; failures are reported in the outcome.
        """
        outcome = CaptureOutcome(
            capture=capture, state=CaptureState.DISCOVERED, trail=[CaptureState.DISCOVERED]
        )

        def advance(state: CaptureState) -> None:
            outcome.state = state
            outcome.trail.append(state)

        try:
            with self.normalizer.staged_copy(capture) as staged:
                advance(CaptureState.COPIED)
                normalized = self.normalizer.normalize(staged)
                advance(CaptureState.NORMALIZED)
            outcome.dedup_hits = normalized.dedup_hits

            series = self.reader.read(normalized, source=capture.relative_path)
            advance(CaptureState.PARSED)

            record = self.score(capture, series)
            advance(CaptureState.SCORED)

            outcome.record = record
            advance(CaptureState.EMITTED)
            logger.info(
                f"{capture.relative_path}: host={record.host_name} status={record.status.value} "
                f"score={record.contention_score} fidelity={record.fidelity_seconds}s"
            )
        except RECOVERABLE_CAPTURE_ERRORS as e:
            outcome.record = None
            outcome.reason = f"{e.reason}: {e}"
            advance(CaptureState.SKIPPED)
            logger.warning(f"Skipping {capture.relative_path}: {outcome.reason}")
        except Exception as e:
            outcome.record = None
            outcome.reason = f"unexpected_error: {type(e).__name__}: {e}"
            advance(CaptureState.FAILED)
            logger.error(f"Analysis of {capture.relative_path} failed: {outcome.reason}", exc_info=True)

        return outcome

    def score(self, capture: CaptureFile, series: CaptureSeries) -> HostDiagnostic:
        """
        Build the HostDiagnostic for a parsed capture.

        Missing scheduling-pressure or target-workload counters degrade the
        record to DataMissing instead of discarding it.
        """
        summaries: List[ProcessMetricSummary] = []
        target_cpu_series: List[CounterSeries] = []
        for instance in series.process_instances:
            is_target = is_target_instance(instance, self._target_re)
            cpu = series.process_series(instance, MetricKind.CPU)
            summaries.append(
                summarize_process(
                    instance=instance,
                    cpu=cpu.values,
                    privileged=series.process_series(instance, MetricKind.PRIVILEGED).values,
                    user=series.process_series(instance, MetricKind.USER).values,
                    memory=series.process_series(instance, MetricKind.MEMORY).values,
                    priority=series.process_series(instance, MetricKind.PRIORITY).values,
                    is_target=is_target,
                    thresholds=self.thresholds,
                )
            )
            if is_target:
                target_cpu_series.append(cpu)

        findings: List[str] = []
        try:
            score, status = self._contention(series, target_cpu_series)
            if status is not DiagnosticStatus.HEALTHY:
                findings.append(
                    f"{status.value} contention: target CPU tracks scheduling pressure (r={score})"
                )
        except DataGapError as e:
            logger.warning(f"{capture.relative_path}: {e}; recording as {DiagnosticStatus.DATA_MISSING.value}")
            score, status = 0.0, DiagnosticStatus.DATA_MISSING
            findings.append(f"Data missing: {e}")

        findings.extend(self._process_findings(summaries))
        if series.low_fidelity:
            findings.append(
                f"Low sampling fidelity: {series.fidelity_seconds:.1f}s between samples"
            )

        return HostDiagnostic(
            host_name=series.host_name,
            source_file=capture.relative_path,
            report_file_name=report_file_name(series.host_name, capture.relative_path),
            contention_score=score,
            fidelity_seconds=series.fidelity_seconds,
            status=status,
            interval_count=series.interval_count,
            low_fidelity=series.low_fidelity,
            dedup_hits=series.dedup_hits,
            findings=tuple(findings),
            process_summaries=tuple(summaries),
        )

    def _contention(self, series: CaptureSeries, target_cpu_series: List[CounterSeries]):
        if series.scheduling_pressure.is_empty:
            raise DataGapError("no scheduling-pressure (CPU stolen time) samples")
        if not target_cpu_series:
            raise DataGapError(
                f"no process matches target pattern '{self.analysis_config.target_process_pattern}'"
            )
        target_cpu = aggregate_target_cpu(target_cpu_series, series.interval_count)
        if all(v is None for v in target_cpu):
            raise DataGapError("target processes report no CPU samples")

        score = contention_score(series.scheduling_pressure.values, target_cpu)
        return score, classify_contention(score, self.thresholds)

    def _process_findings(self, summaries: List[ProcessMetricSummary]) -> List[str]:
        findings = []
        for summary in summaries:
            if not summary.is_target:
                continue
            if summary.kernel_interference:
                findings.append(
                    f"{summary.instance}: kernel/user ratio {summary.kernel_user_ratio:.2f} "
                    f"above {self.thresholds.kernel_user_ratio} (filter-driver interference suspected)"
                )
            if summary.memory_leak_suspected:
                findings.append(
                    f"{summary.instance}: private bytes growing {summary.memory_slope_mb:.2f} MB/interval"
                )
            if summary.priority_deviates:
                findings.append(
                    f"{summary.instance}: base priority {summary.avg_base_priority:g} deviates from "
                    f"expected {self.thresholds.expected_base_priority}"
                )
        return findings
