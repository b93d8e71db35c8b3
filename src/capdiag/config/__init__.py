"""
Configuration management for the capdiag package.

This module provides a clean interface for loading, validating, and accessing
configuration data from a TOML file with singleton pattern management.
"""

from .manager import (
    clear_config_cache,
    get_config,
    is_config_loaded,
    load_config,
    set_config_path,
)
from .loader import load_main_config, load_toml_file, resolve_config_path
from .validators import (
    validate_analysis_config,
    validate_app_config,
    validate_decoder_config,
    validate_discovery_config,
    validate_output_config,
    validate_scheduler_config,
)

__all__ = [
    # Main interface
    "get_config",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "load_config",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "resolve_config_path",
    "validate_analysis_config",
    "validate_app_config",
    "validate_decoder_config",
    "validate_discovery_config",
    "validate_output_config",
    "validate_scheduler_config",
]
