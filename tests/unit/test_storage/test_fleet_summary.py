"""
Unit tests for storage backends and the fleet summary writer.
"""

import json

import polars as pl
import pytest

from capdiag.models import DiagnosticStatus, HostDiagnostic, ProcessMetricSummary
from capdiag.storage import (
    SUMMARY_SCHEMA,
    CsvStorage,
    FleetSummaryWriter,
    JsonStorage,
    ParquetStorage,
    create_storage,
    records_to_frame,
)


def make_record(host, source, score=0.8, status=DiagnosticStatus.CRITICAL, **kwargs):
    return HostDiagnostic(
        host_name=host,
        source_file=source,
        report_file_name=f"{host}__{source.replace('/', '_')}__deadbeef.json",
        contention_score=score,
        fidelity_seconds=5.0,
        status=status,
        **kwargs,
    )


@pytest.mark.unit
class TestStorageFactory:
    @pytest.mark.parametrize(
        "fmt,cls", [("parquet", ParquetStorage), ("csv", CsvStorage), ("json", JsonStorage), ("CSV", CsvStorage)]
    )
    def test_create_storage(self, fmt, cls):
        assert isinstance(create_storage(fmt), cls)

    def test_compression_is_passed_to_parquet(self):
        assert create_storage("parquet", "zstd").compression == "zstd"

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported storage format"):
            create_storage("xlsx")


@pytest.mark.unit
class TestBackends:
    """Save/load through every backend keeps the table intact."""

    @pytest.mark.parametrize("storage", [ParquetStorage(), CsvStorage(), JsonStorage()])
    def test_dataframe_round_trip(self, temp_dir, storage):
        df = pl.DataFrame({"host_name": ["A", "B"], "contention_score": [0.1, 0.9]})
        path = temp_dir / "nested" / f"table.{storage.extension}"

        storage.save_dataframe(df, str(path))
        loaded = storage.load_dataframe(str(path))

        assert loaded["host_name"].to_list() == ["A", "B"]
        assert loaded["contention_score"].to_list() == [0.1, 0.9]
        assert path.stat().st_size > 0

    def test_column_pruning(self, temp_dir):
        storage = ParquetStorage()
        path = temp_dir / "t.parquet"
        storage.save_dataframe(pl.DataFrame({"a": [1], "b": [2]}), str(path))

        assert storage.load_dataframe(str(path), columns=["b"]).columns == ["b"]

    def test_save_dict_creates_parent_directories(self, temp_dir):
        storage = JsonStorage()
        path = temp_dir / "reports" / "doc.json"

        storage.save_dict({"findings": ["x"], "score": 1.0}, str(path))

        assert json.loads(path.read_text(encoding="utf-8")) == {"findings": ["x"], "score": 1.0}


@pytest.mark.unit
class TestFleetSummaryWriter:
    """Test cases for the consolidated summary and per-capture reports."""

    def test_rows_sorted_by_host_and_source(self):
        records = [
            make_record("SQL02", "b.blg"),
            make_record("SQL01", "z.blg"),
            make_record("SQL01", "a.blg"),
        ]

        df = records_to_frame(records)

        assert list(zip(df["host_name"], df["source_file"])) == [
            ("SQL01", "a.blg"),
            ("SQL01", "z.blg"),
            ("SQL02", "b.blg"),
        ]
        assert df.columns == list(SUMMARY_SCHEMA)
        assert df.schema["contention_score"] == pl.Float64

    def test_empty_summary_keeps_schema(self, temp_dir):
        writer = FleetSummaryWriter(temp_dir, "parquet")

        path = writer.write_summary([])

        loaded = pl.read_parquet(path)
        assert loaded.height == 0
        assert loaded.columns == list(SUMMARY_SCHEMA)

    @pytest.mark.parametrize("fmt", ["parquet", "csv", "json"])
    def test_write_summary_formats(self, temp_dir, fmt):
        writer = FleetSummaryWriter(temp_dir / "out", fmt)
        records = [
            make_record("SQL01", "east/cap.blg", findings=("one", "two")),
            make_record("SQL01", "west/cap.blg", score=0.0, status=DiagnosticStatus.DATA_MISSING),
        ]

        path = writer.write_summary(records)
        loaded = writer.storage.load_dataframe(str(path))

        assert path.name == f"fleet_summary.{fmt}"
        assert loaded.height == 2
        assert loaded["status"].to_list() == ["Critical", "DataMissing"]
        assert loaded["findings"].to_list()[0] == "one; two"

    def test_capture_report(self, temp_dir):
        writer = FleetSummaryWriter(temp_dir)
        summary = ProcessMetricSummary(
            instance="sqlservr",
            avg_cpu=40.0,
            kernel_user_ratio=0.1,
            memory_slope_bytes=0.0,
            memory_slope_mb=0.0,
            peak_memory_bytes=4e8,
            avg_base_priority=8.0,
            priority_deviation=0,
            is_target=True,
        )
        record = make_record("SQL01", "east/cap.blg", findings=("x",), process_summaries=(summary,))

        path = writer.write_capture_report(record)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert path.name == record.report_file_name
        assert data["status"] == "Critical"
        assert data["findings"] == ["x"]
        assert data["processes"][0]["instance"] == "sqlservr"
