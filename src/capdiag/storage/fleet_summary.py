"""
Fleet summary writer.

Turns the collected HostDiagnostic records into one consolidated table and,
optionally, one detail report per capture.
"""

import logging
from pathlib import Path
from typing import Iterable, List

import polars as pl

from ..models.results import HostDiagnostic
from .factory import create_storage

logger = logging.getLogger(__name__)

SUMMARY_BASENAME = "fleet_summary"

SUMMARY_SCHEMA = {
    "host_name": pl.Utf8,
    "source_file": pl.Utf8,
    "report_file_name": pl.Utf8,
    "contention_score": pl.Float64,
    "fidelity_seconds": pl.Float64,
    "status": pl.Utf8,
    "interval_count": pl.Int64,
    "low_fidelity": pl.Boolean,
    "dedup_hits": pl.Int64,
    "findings": pl.Utf8,
}


def records_to_frame(records: Iterable[HostDiagnostic]) -> pl.DataFrame:
    """Summary table sorted by (host_name, source_file); empty input keeps the schema."""
    rows = [r.to_row() for r in sorted(records, key=lambda r: r.key)]
    return pl.DataFrame(rows, schema=SUMMARY_SCHEMA)


class FleetSummaryWriter:
    """Writes the fleet summary table and per-capture reports into ``output_dir``."""

    def __init__(self, output_dir: Path, summary_format: str = "parquet", compression: str = "snappy"):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.storage = create_storage(summary_format, compression)

    @property
    def summary_path(self) -> Path:
        return self.output_dir / f"{SUMMARY_BASENAME}.{self.storage.extension}"

    def write_summary(self, records: List[HostDiagnostic]) -> Path:
        df = records_to_frame(records)
        path = self.summary_path
        self.storage.save_dataframe(df, str(path))
        logger.info(f"Wrote fleet summary with {df.height} record(s) to {path}")
        return path

    def write_capture_report(self, record: HostDiagnostic) -> Path:
        path = self.output_dir / record.report_file_name
        self.storage.save_dict(record.to_dict(), str(path))
        logger.debug(f"Wrote capture report {path}")
        return path
