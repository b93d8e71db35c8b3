"""
Parquet storage implementation using Polars.
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

import polars as pl

from .base import DataStorage

logger = logging.getLogger(__name__)

Compression = Literal["snappy", "gzip", "brotli", "lz4", "zstd", "uncompressed"]


class ParquetStorage(DataStorage):
    """
    Columnar Parquet storage with configurable compression.

    The default for fleet summaries: compact, typed, and readable by
    pandas/Polars/Spark without schema guessing.
    """

    extension = "parquet"

    def __init__(self, compression: Compression = "snappy"):
        self.compression = compression
        logger.debug(f"Initialized ParquetStorage with compression: {compression}")

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_parquet(path, compression=self.compression)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        if columns:
            return pl.read_parquet(path, columns=columns)
        return pl.read_parquet(path)
