"""
Counter path classification.

Turns raw counter paths into typed CounterPath values once, up front.
"""

from .counters import (
    DEFAULT_AGGREGATE_INSTANCES,
    clear_classification_cache,
    default_counter_filter,
    is_aggregate_instance,
    parse_counter_path,
)

__all__ = [
    "DEFAULT_AGGREGATE_INSTANCES",
    "clear_classification_cache",
    "default_counter_filter",
    "is_aggregate_instance",
    "parse_counter_path",
]
