"""
Storage for fleet diagnostics.

- Parquet, CSV and JSON table backends behind a common DataStorage interface
- The fleet summary writer producing the consolidated table and per-capture
  JSON reports
"""

from .base import DataStorage
from .factory import create_storage
from .fleet_summary import SUMMARY_SCHEMA, FleetSummaryWriter, records_to_frame
from .parquet_storage import ParquetStorage
from .text_storage import CsvStorage, JsonStorage

__all__ = [
    "DataStorage",
    "ParquetStorage",
    "CsvStorage",
    "JsonStorage",
    "create_storage",
    "FleetSummaryWriter",
    "SUMMARY_SCHEMA",
    "records_to_frame",
]
