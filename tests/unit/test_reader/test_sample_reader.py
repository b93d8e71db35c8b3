"""
Unit tests for the sample stream reader.
"""

import logging
from datetime import datetime, timedelta

import pytest

from capdiag.models import CaptureFile, MetricKind
from capdiag.reader import UNKNOWN_HOST, SampleStreamReader, compute_fidelity, resolve_host_name
from capdiag.classification import parse_counter_path

STOLEN = r"\\SQL01\VM Processor(_Total)\CPU stolen time"
SQL_CPU = r"\\SQL01\Process(sqlservr)\% Processor Time"
SQL_MEM = r"\\SQL01\Process(sqlservr)\Private Bytes"
TOTAL_CPU = r"\\SQL01\Process(_Total)\% Processor Time"
IDLE_CPU = r"\\SQL01\Process(Idle)\% Processor Time"


@pytest.fixture
def read_capture(temp_dir, normalizer, fake_decoder, capture_builder):
    """Write columns as a capture, normalize it and read it back."""

    def _read(columns, reader=None, **kwargs):
        path = capture_builder.write(temp_dir / "cap.blg", columns, **kwargs)
        capture = CaptureFile(path=path, size_bytes=path.stat().st_size, relative_path="cap.blg")
        normalized = normalizer.normalize_capture(capture)
        return (reader or SampleStreamReader()).read(normalized, source="cap.blg")

    return _read


@pytest.mark.unit
class TestSampleStreamReader:
    """Test cases for typed series assembly."""

    def test_values_and_timestamps_are_typed(self, read_capture):
        series = read_capture({STOLEN: [1.0, 2.5, 3.0], SQL_CPU: [10.0, 20.0, 30.0]})

        assert series.host_name == "SQL01"
        assert series.interval_count == 3
        assert series.scheduling_pressure.values == [1.0, 2.5, 3.0]
        assert series.process_series("sqlservr", MetricKind.CPU).values == [10.0, 20.0, 30.0]
        assert series.timestamps[1] - series.timestamps[0] == timedelta(seconds=5)
        assert isinstance(series.timestamps[0], datetime)

    def test_blank_cells_become_missing_not_zero(self, read_capture):
        series = read_capture({STOLEN: [1.0, None, 3.0], SQL_CPU: [None, 5.0, None]})

        assert series.scheduling_pressure.values == [1.0, None, 3.0]
        assert series.process_series("sqlservr", MetricKind.CPU).values == [None, 5.0, None]

    def test_aggregate_instances_are_host_totals(self, read_capture):
        series = read_capture({SQL_CPU: [1.0, 2.0], TOTAL_CPU: [50.0, 60.0], IDLE_CPU: [40.0, 30.0]})

        assert series.process_instances == ["sqlservr"]
        assert series.host_totals[MetricKind.CPU].values == [50.0, 60.0]

    def test_absent_metric_is_all_gaps(self, read_capture):
        series = read_capture({SQL_CPU: [1.0, 2.0, 3.0]})

        memory = series.process_series("sqlservr", MetricKind.MEMORY)
        assert memory.values == [None, None, None]
        assert memory.is_empty
        assert series.scheduling_pressure.is_empty

    def test_host_unknown_without_host_prefix(self, read_capture):
        series = read_capture({r"\Process(app)\% Processor Time": [1.0, 2.0]})

        assert series.host_name == UNKNOWN_HOST

    def test_fidelity_from_sample_spacing(self, read_capture):
        series = read_capture({STOLEN: [1.0, 2.0, 3.0]}, interval_seconds=5)

        assert series.fidelity_seconds == 5.0
        assert series.low_fidelity is False

    def test_low_fidelity_is_flagged_and_logged(self, read_capture, caplog):
        with caplog.at_level(logging.WARNING, logger="capdiag.reader.sample_reader"):
            series = read_capture({STOLEN: [1.0, 2.0, 3.0]}, interval_seconds=30)

        assert series.fidelity_seconds == 30.0
        assert series.low_fidelity is True
        assert "short bursts may be aliased away" in caplog.text

    def test_custom_aggregates_and_threshold(self, read_capture):
        reader = SampleStreamReader(aggregate_instances=["_Total"], low_fidelity_threshold_seconds=2.0)
        series = read_capture({SQL_CPU: [1.0, 2.0], IDLE_CPU: [3.0, 4.0]}, reader=reader)

        assert sorted(series.process_instances) == ["Idle", "sqlservr"]
        assert series.low_fidelity is True

    def test_iter_intervals(self, read_capture):
        series = read_capture({STOLEN: [1.0, 2.0], SQL_CPU: [10.0, None], SQL_MEM: [100.0, 200.0]})

        readings = list(series.iter_intervals())

        assert [r.index for r in readings] == [0, 1]
        assert readings[0].scheduling_pressure == 1.0
        assert readings[1].processes["sqlservr"][MetricKind.CPU] is None
        assert readings[1].processes["sqlservr"][MetricKind.MEMORY] == 200.0

    def test_samples_stream(self, read_capture):
        series = read_capture({STOLEN: [1.0, 2.0], SQL_CPU: [10.0, 11.0]})

        samples = list(series.samples())

        assert len(samples) == 4
        assert {s.counter_path.kind for s in samples} == {MetricKind.SCHEDULING_PRESSURE, MetricKind.CPU}
        assert samples[0].timestamp == series.timestamps[0]


@pytest.mark.unit
class TestHelpers:
    def test_compute_fidelity_needs_two_timestamps(self):
        assert compute_fidelity([]) == 0.0
        assert compute_fidelity([datetime(2024, 1, 1), None]) == 0.0

    def test_compute_fidelity_skips_missing_timestamps(self):
        start = datetime(2024, 1, 1)
        stamps = [start, None, start + timedelta(seconds=10), start + timedelta(seconds=20)]
        assert compute_fidelity(stamps) == 10.0

    def test_resolve_host_name_uses_first_named_host(self):
        paths = [
            parse_counter_path(r"\Process(a)\% User Time"),
            parse_counter_path(r"\\DB7\Process(a)\% User Time"),
        ]
        assert resolve_host_name(paths) == "DB7"
        assert resolve_host_name([]) == UNKNOWN_HOST
