"""
Fleet runner for CLI integration.

Wires discovery, the per-capture analyzer, the scheduler and the summary
writer together for one run over a capture tree.
"""

import logging
from typing import Optional

from ..analysis import CaptureAnalyzer
from ..discovery import discover_capture_files
from ..executor import ParallelWorkScheduler
from ..models.config import AppConfig
from ..models.results import FleetRunResult
from ..normalizer import CaptureNormalizer
from ..reader import SampleStreamReader
from ..storage import FleetSummaryWriter
from ..system import resolve_decoder_binary
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


class FleetRunner:
    """
    Runs the whole pipeline for one configuration.

    Decoder resolution and discovery failures are fatal and propagate; every
    per-capture problem is contained in that capture's outcome.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.analyzer: Optional[CaptureAnalyzer] = None

    def build_analyzer(self) -> CaptureAnalyzer:
        decoder_binary = resolve_decoder_binary(self.config.decoder)

        normalizer = CaptureNormalizer(
            decoder_binary=decoder_binary,
            decoder_config=self.config.decoder,
            work_dir=self.config.discovery.work_dir,
        )
        reader = SampleStreamReader(
            aggregate_instances=self.config.analysis.excluded_instances,
            low_fidelity_threshold_seconds=self.config.analysis.low_fidelity_threshold_seconds,
        )
        return CaptureAnalyzer(normalizer, reader, self.config.analysis)

    def run(self) -> FleetRunResult:
        self.analyzer = self.build_analyzer()

        discovery = self.config.discovery
        captures = discover_capture_files(discovery.source_root, discovery.patterns)

        scheduler_config = self.config.scheduler
        scheduler = ParallelWorkScheduler(
            analyze_fn=self.analyzer.analyze,
            max_concurrency=scheduler_config.max_concurrency,
            poll_interval=scheduler_config.poll_interval_seconds,
            thread_name_prefix=scheduler_config.thread_name_prefix,
            shutdown_timeout=scheduler_config.shutdown_timeout,
        )
        result = scheduler.run(captures)

        self._write_outputs(result)

        logger.info(
            f"Fleet run finished in {result.elapsed_seconds:.1f}s: {len(captures)} discovered, "
            f"{result.analyzed_count} analyzed, {result.skipped_count} skipped, "
            f"{result.failed_count} failed, {result.dedup_hits} duplicate counter substitution(s)"
        )
        for outcome in result.outcomes:
            if outcome.reason:
                logger.debug(f"{outcome.capture.relative_path}: {outcome.state.value} ({outcome.reason})")
        return result

    def _write_outputs(self, result: FleetRunResult) -> None:
        output = self.config.output
        writer = FleetSummaryWriter(output.output_dir, output.summary_format, output.compression)
        result.summary_path = str(writer.write_summary(result.records))

        if not output.write_capture_reports:
            return
        for record in result.records:
            try:
                writer.write_capture_report(record)
            except OSError as e:
                handle_error(
                    error=e,
                    context=f"writing report for {record.source_file}",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )
