"""
Validation and error handling for the capdiag package.

This module provides the capture error taxonomy, input validation and
consistent error reporting across the application.
"""

from .exceptions import (
    ErrorSeverity,
    ValidationError,
    CaptureError,
    DiscoveryError,
    DecoderNotFoundError,
    EmptyCaptureError,
    LockedFileError,
    ConversionError,
    CaptureImportError,
    EmptySampleSetError,
    DataGapError,
    RECOVERABLE_CAPTURE_ERRORS,
    handle_error,
    handle_config_error,
    handle_cli_error,
)

from .validators import (
    validate_boolean,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
    validate_regex_pattern,
    validate_string_list,
)

__all__ = [
    # Errors
    "ErrorSeverity",
    "ValidationError",
    "CaptureError",
    "DiscoveryError",
    "DecoderNotFoundError",
    "EmptyCaptureError",
    "LockedFileError",
    "ConversionError",
    "CaptureImportError",
    "EmptySampleSetError",
    "DataGapError",
    "RECOVERABLE_CAPTURE_ERRORS",
    # Handlers
    "handle_error",
    "handle_config_error",
    "handle_cli_error",
    # Validators
    "validate_boolean",
    "validate_enum_choice",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_regex_pattern",
    "validate_string_list",
]
