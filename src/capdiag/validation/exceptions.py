"""
Exception taxonomy and error handling helpers.

This module holds the error types raised while analysing capture files and the
small set of helpers used to log errors consistently across the application.

Per-file errors (EmptyCaptureError, LockedFileError, ConversionError,
CaptureImportError, EmptySampleSetError) are always recoverable: the analyzer
turns them into a skipped capture. DataGapError degrades a record instead of
discarding it. DiscoveryError and DecoderNotFoundError end the whole run.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Raised when configuration or command-line input fails validation.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class CaptureError(Exception):
    """Base class for every error raised while processing captures."""

    #: Short machine-readable reason used in logs and skip outcomes.
    reason = "capture_error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class DiscoveryError(CaptureError):
    """No capture files could be found under the source root."""
    reason = "no_input_files"


class DecoderNotFoundError(CaptureError):
    """The external decoder binary could not be resolved."""
    reason = "decoder_not_found"


class EmptyCaptureError(CaptureError):
    """The capture file is zero bytes long."""
    reason = "empty_file"


class LockedFileError(CaptureError):
    """The capture file could not be read because another process holds it."""
    reason = "locked_file"


class ConversionError(CaptureError):
    """
    The decoder failed on both the filtered and the unfiltered attempt.

    Attributes:
        diagnostics: Leading lines of decoder output, for the log.
    """
    reason = "conversion_failed"

    def __init__(self, message: str, path: Optional[str] = None, diagnostics: str = ""):
        super().__init__(message, path)
        self.diagnostics = diagnostics

    def __str__(self) -> str:
        base = super().__str__()
        if self.diagnostics:
            return f"{base}\n{self.diagnostics}"
        return base


class CaptureImportError(CaptureError):
    """The decoder output exists but cannot be loaded as a counter table."""
    reason = "import_failed"


class EmptySampleSetError(CaptureError):
    """The decoder output holds a header but no sample rows."""
    reason = "empty_sample_set"


class DataGapError(CaptureError):
    """Counters needed for scoring are absent from the capture."""
    reason = "data_missing"


# Errors that skip a single capture without failing it.
RECOVERABLE_CAPTURE_ERRORS = (
    EmptyCaptureError,
    LockedFileError,
    ConversionError,
    CaptureImportError,
    EmptySampleSetError,
)


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log an error with its context and optionally re-raise it.

    Args:
        error: The exception that occurred
        context: Where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI error and exit the process."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
