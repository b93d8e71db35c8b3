"""
Per-capture analysis: one capture in, one outcome out.
"""

from .capture_analyzer import REPORT_EXTENSION, CaptureAnalyzer, report_file_name

__all__ = ["REPORT_EXTENSION", "CaptureAnalyzer", "report_file_name"]
