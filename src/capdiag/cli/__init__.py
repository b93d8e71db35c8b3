"""
Command-line interface for the capdiag package.
"""

from .main import main_cli
from .orchestrator import FleetRunner

__all__ = [
    "main_cli",
    "FleetRunner",
]
