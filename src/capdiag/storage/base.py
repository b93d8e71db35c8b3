"""
Abstract base class for tabular storage backends.

Every backend writes and reads a Polars DataFrame in one file format. Small
structured documents (per-capture reports) are always JSON, so the dict
helpers are shared here rather than implemented per backend.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl

logger = logging.getLogger(__name__)


class DataStorage(ABC):
    """Abstract base class for data storage implementations."""

    #: File extension (without dot) written by this backend.
    extension: str = ""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """
        Save a Polars DataFrame to the specified path.

        Args:
            df: Polars DataFrame to save
            path: File path to save to
        """

    @abstractmethod
    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """
        Load a Polars DataFrame from the specified path.

        Args:
            path: File path to load from
            columns: Optional list of columns to load
        """

    def save_dict(self, data: Dict[str, Any], path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            logger.debug(f"Saved dictionary data to {path}")
        except Exception as e:
            logger.error(f"Failed to save dictionary to {path}: {e}")
            raise
