"""
Factory for creating storage instances.
"""

import logging

from .base import DataStorage
from .parquet_storage import Compression, ParquetStorage
from .text_storage import CsvStorage, JsonStorage

logger = logging.getLogger(__name__)


def create_storage(format_type: str = "parquet", compression: Compression = "snappy") -> DataStorage:
    """
    Create a storage instance for the given summary format.

    Args:
        format_type: 'parquet', 'csv' or 'json'
        compression: Compression algorithm (Parquet only)

    Raises:
        ValueError: If an unsupported format type is specified
    """
    format_type = format_type.lower()
    if format_type == "parquet":
        logger.debug(f"Creating ParquetStorage with compression: {compression}")
        return ParquetStorage(compression=compression)
    elif format_type == "csv":
        return CsvStorage()
    elif format_type == "json":
        return JsonStorage()
    else:
        raise ValueError(f"Unsupported storage format: {format_type}")
