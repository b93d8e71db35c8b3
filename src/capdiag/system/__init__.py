"""
System interaction utilities.

- Running the external decoder with captured output and a timeout
- Resolving the decoder binary from configuration or PATH
- Detecting available processing units to bound worker concurrency
"""

from .commands import CommandResult, resolve_decoder_binary, run_command
from .cpu import bound_concurrency, get_available_cores

__all__ = [
    "CommandResult",
    "resolve_decoder_binary",
    "run_command",
    "bound_concurrency",
    "get_available_cores",
]
