"""
Text-based storage implementations (CSV and JSON) using Polars.

Useful when the fleet summary is consumed by spreadsheets or scripts that
cannot read Parquet.
"""

import logging
from pathlib import Path
from typing import List, Optional

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)


class CsvStorage(DataStorage):
    """Comma-separated table with a header row."""

    extension = "csv"

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_csv(path)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        return pl.read_csv(path, columns=columns)


class JsonStorage(DataStorage):
    """JSON array of row objects."""

    extension = "json"

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_json(path)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        df = pl.read_json(path)
        return df.select(columns) if columns else df
