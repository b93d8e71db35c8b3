"""
Unit tests for the per-capture analyzer state machine.
"""

import logging
from unittest.mock import patch

import pytest

from capdiag.analysis import CaptureAnalyzer, report_file_name
from capdiag.models import AnalysisConfig, CaptureFile, CaptureState, DiagnosticStatus
from capdiag.reader import SampleStreamReader

HAPPY_TRAIL = [
    CaptureState.DISCOVERED,
    CaptureState.COPIED,
    CaptureState.NORMALIZED,
    CaptureState.PARSED,
    CaptureState.SCORED,
    CaptureState.EMITTED,
]


def capture_for(path, relative=None):
    return CaptureFile(path=path, size_bytes=path.stat().st_size, relative_path=relative or path.name)


@pytest.mark.unit
class TestAnalyze:
    """Test cases for CaptureAnalyzer.analyze."""

    def test_correlated_capture_is_critical(self, temp_dir, analyzer, fake_decoder, capture_builder):
        path = capture_builder.write(temp_dir / "east" / "cap.blg", capture_builder.fleet_columns())

        outcome = analyzer.analyze(capture_for(path, "east/cap.blg"))

        assert outcome.emitted
        assert outcome.trail == HAPPY_TRAIL
        record = outcome.record
        assert record.host_name == "SQL01"
        assert record.source_file == "east/cap.blg"
        assert record.contention_score == 1.0
        assert record.status is DiagnosticStatus.CRITICAL
        assert record.fidelity_seconds == 5.0
        assert record.interval_count == 12
        assert record.report_file_name == report_file_name("SQL01", "east/cap.blg")
        assert any("Critical contention" in f for f in record.findings)

    def test_uncorrelated_capture_is_healthy(self, temp_dir, analyzer, fake_decoder, capture_builder):
        columns = capture_builder.fleet_columns(correlated=False)
        path = capture_builder.write(temp_dir / "cap.blg", columns)

        record = analyzer.analyze(capture_for(path)).record

        assert record.contention_score == 0.0
        assert record.status is DiagnosticStatus.HEALTHY
        assert record.findings == ()

    def test_process_summaries(self, temp_dir, analyzer, fake_decoder, capture_builder):
        path = capture_builder.write(temp_dir / "cap.blg", capture_builder.fleet_columns())

        record = analyzer.analyze(capture_for(path)).record

        summaries = {s.instance: s for s in record.process_summaries}
        assert set(summaries) == {"sqlservr", "svchost"}
        assert summaries["sqlservr"].is_target
        assert not summaries["svchost"].is_target
        assert summaries["sqlservr"].kernel_user_ratio == 0.1
        assert summaries["sqlservr"].priority_deviation == 0

    def test_target_anomalies_become_findings(self, temp_dir, analyzer, fake_decoder, capture_builder):
        columns = capture_builder.fleet_columns()
        columns[r"\\SQL01\Process(sqlservr)\% Privileged Time"] = [15.0] * 12
        columns[r"\\SQL01\Process(sqlservr)\Private Bytes"] = [4e8 + i * 1048576.0 for i in range(12)]
        columns[r"\\SQL01\Process(sqlservr)\Priority Base"] = [13.0] * 12
        path = capture_builder.write(temp_dir / "cap.blg", columns)

        record = analyzer.analyze(capture_for(path)).record

        text = "\n".join(record.findings)
        assert "filter-driver interference" in text
        assert "private bytes growing 1.00 MB/interval" in text
        assert "base priority 13 deviates from expected 8" in text

    def test_missing_scheduling_pressure_degrades_to_data_missing(
        self, temp_dir, analyzer, fake_decoder, capture_builder, caplog
    ):
        columns = capture_builder.fleet_columns()
        del columns[r"\\SQL01\VM Processor(_Total)\CPU stolen time"]
        path = capture_builder.write(temp_dir / "cap.blg", columns)

        with caplog.at_level(logging.WARNING):
            outcome = analyzer.analyze(capture_for(path))

        assert outcome.emitted
        assert outcome.record.status is DiagnosticStatus.DATA_MISSING
        assert outcome.record.contention_score == 0.0
        assert "DataMissing" in caplog.text

    def test_missing_target_process_degrades_to_data_missing(
        self, temp_dir, normalizer, fake_decoder, capture_builder
    ):
        analyzer = CaptureAnalyzer(
            normalizer, SampleStreamReader(), AnalysisConfig(target_process_pattern="^w3wp")
        )
        path = capture_builder.write(temp_dir / "cap.blg", capture_builder.fleet_columns())

        record = analyzer.analyze(capture_for(path)).record

        assert record.status is DiagnosticStatus.DATA_MISSING
        assert "w3wp" in record.findings[0]

    def test_zero_byte_capture_is_skipped_with_warning(self, temp_dir, analyzer, fake_decoder, caplog):
        path = temp_dir / "empty.blg"
        path.write_bytes(b"")

        with caplog.at_level(logging.WARNING):
            outcome = analyzer.analyze(capture_for(path))

        assert outcome.state is CaptureState.SKIPPED
        assert outcome.record is None
        assert outcome.reason.startswith("empty_file")
        assert outcome.trail == [CaptureState.DISCOVERED, CaptureState.SKIPPED]
        assert "Skipping empty.blg" in caplog.text

    def test_conversion_failure_is_skipped(self, temp_dir, analyzer, fake_decoder, capture_builder):
        fake_decoder.fail_always = True
        path = capture_builder.write(temp_dir / "cap.blg", capture_builder.fleet_columns())

        outcome = analyzer.analyze(capture_for(path))

        assert outcome.state is CaptureState.SKIPPED
        assert outcome.reason.startswith("conversion_failed")
        assert outcome.trail[-2] is CaptureState.COPIED

    def test_unexpected_error_is_failed_not_raised(self, temp_dir, analyzer, fake_decoder, capture_builder, caplog):
        path = capture_builder.write(temp_dir / "cap.blg", capture_builder.fleet_columns())

        with patch.object(analyzer.reader, "read", side_effect=RuntimeError("boom")):
            with caplog.at_level(logging.ERROR):
                outcome = analyzer.analyze(capture_for(path))

        assert outcome.state is CaptureState.FAILED
        assert outcome.record is None
        assert "RuntimeError: boom" in outcome.reason
        assert "boom" in caplog.text

    def test_dedup_hits_are_reported(self, temp_dir, analyzer, fake_decoder, capture_builder):
        columns = capture_builder.fleet_columns()
        legacy = columns[r"\\SQL01\Process(sqlservr)\% Processor Time"]
        columns[r"\\SQL01\Process V2(sqlservr)\% Processor Time"] = [v + 1.0 for v in legacy[:6]] + [None] * 6
        path = capture_builder.write(temp_dir / "cap.blg", columns)

        outcome = analyzer.analyze(capture_for(path))

        assert outcome.dedup_hits == 6
        assert outcome.record.dedup_hits == 6

    def test_v2_pid_labels_merge_with_legacy_process(self, temp_dir, analyzer, fake_decoder, capture_builder):
        columns = capture_builder.fleet_columns()
        legacy = columns[r"\\SQL01\Process(sqlservr)\% Processor Time"]
        columns[r"\\SQL01\Process V2(sqlservr:4242)\% Processor Time"] = [v + 1.0 for v in legacy]
        path = capture_builder.write(temp_dir / "cap.blg", columns)

        record = analyzer.analyze(capture_for(path)).record

        assert record.dedup_hits == 12
        summaries = {s.instance: s for s in record.process_summaries}
        assert set(summaries) == {"sqlservr", "svchost"}
        assert summaries["sqlservr"].avg_cpu == pytest.approx(31.0)
        assert summaries["sqlservr"].kernel_user_ratio == 0.1
        assert record.contention_score == 1.0


@pytest.mark.unit
class TestReportFileName:
    def test_identical_base_names_do_not_collide(self):
        first = report_file_name("SQL01", "east/capture.blg")
        second = report_file_name("SQL01", "west/capture.blg")

        assert first != second
        assert first.startswith("SQL01__east_capture__")
        assert first.endswith(".json")

    def test_flattened_path_collisions_are_split_by_hash(self):
        # Both flatten to "a_b_capture"; only the hash tells them apart.
        assert report_file_name("H", "a/b_capture.blg") != report_file_name("H", "a_b/capture.blg")

    def test_deterministic(self):
        assert report_file_name("H", "x/y.blg") == report_file_name("H", "x/y.blg")

    def test_unsafe_host_characters(self):
        name = report_file_name("bad host:name", "c.blg")
        assert " " not in name and ":" not in name
