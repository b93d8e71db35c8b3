"""Capture file discovery."""

from .finder import discover_capture_files

__all__ = ["discover_capture_files"]
