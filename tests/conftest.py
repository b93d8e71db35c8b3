"""
Pytest configuration and shared fixtures for the capdiag test suite.

Captures in these tests are PDH-style CSV text saved under a ``.blg`` name.
The ``fake_decoder`` fixture replaces the decoder subprocess with a function
that copies the input file to the requested output path, so the full
normalize/read/score pipeline runs without the real decoder.
"""

import shutil
import sys
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import patch

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from capdiag.system.commands import CommandResult  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing."""
    return {
        "analysis": {
            "target_process_pattern": "sqlservr",
            "excluded_instances": ["_Total", "Idle"],
            "contention_critical_threshold": 0.7,
            "contention_warning_threshold": 0.4,
            "kernel_user_ratio_threshold": 0.3,
            "memory_leak_threshold_mb": 0.5,
            "min_regression_samples": 10,
            "expected_base_priority": 8,
            "low_fidelity_threshold_seconds": 15.0,
        },
        "decoder": {
            "binary": "",
            "executable_name": "relog",
            "output_format": "CSV",
            "timeout_seconds": 60.0,
            "diagnostic_lines": 5,
            "use_counter_filter": True,
        },
        "scheduler": {
            "max_concurrency": 2,
            "poll_interval_seconds": 0.05,
            "thread_name_prefix": "TestWorker",
            "shutdown_timeout": 5.0,
        },
        "discovery": {
            "source_root": "captures",
            "patterns": ["*.blg"],
            "work_dir": "work",
        },
        "output": {
            "output_dir": "reports",
            "summary_format": "parquet",
            "compression": "snappy",
            "write_capture_reports": True,
        },
    }


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Write config.toml into a temp dir together with its capture/output folders."""
    import toml

    (temp_dir / "captures").mkdir()
    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump(sample_config_data, f)

    return {"config": config_file, "dir": temp_dir}


@pytest.fixture(autouse=True)
def clear_caches_after_test():
    """Reset the configuration singleton and classification cache after each test."""
    yield

    from capdiag.classification import clear_classification_cache
    from capdiag.config import clear_config_cache, set_config_path

    clear_config_cache()
    clear_classification_cache()
    set_config_path(Path(__file__).parent.parent / "conf" / "config.toml")


# ============================================================================
# Capture Builders
# ============================================================================


TIMESTAMP_HEADER = "(PDH-CSV 4.0) (Coordinated Universal Time)(0)"
START_TIME = datetime(2024, 4, 1, 10, 0, 0)


def pdh_csv(
    columns: Dict[str, List[Optional[float]]],
    interval_seconds: float = 5.0,
    start: datetime = START_TIME,
) -> str:
    """Render counter columns as decoder CSV output. None becomes a blank cell."""
    names = list(columns)
    length = max((len(v) for v in columns.values()), default=0)
    lines = [",".join(f'"{n}"' for n in [TIMESTAMP_HEADER] + names)]
    for i in range(length):
        stamp = (start + timedelta(seconds=interval_seconds * i)).strftime("%m/%d/%Y %H:%M:%S.000")
        cells = [stamp]
        for name in names:
            values = columns[name]
            value = values[i] if i < len(values) else None
            cells.append(" " if value is None else repr(float(value)))
        lines.append(",".join(f'"{c}"' for c in cells))
    return "\n".join(lines) + "\n"


def fleet_columns(
    host: str = "SQL01",
    intervals: int = 12,
    correlated: bool = True,
    target: str = "sqlservr",
) -> Dict[str, List[Optional[float]]]:
    """Standard capture: stolen time, target CPU/memory/priority and an idle process."""
    stolen = [float(i % 6) for i in range(intervals)]
    if correlated:
        target_cpu = [10.0 + 8.0 * s for s in stolen]
    else:
        target_cpu = [25.0] * intervals
    return {
        rf"\\{host}\VM Processor(_Total)\CPU stolen time": stolen,
        rf"\\{host}\PhysicalDisk(_Total)\Disk Transfers/sec": [100.0] * intervals,
        rf"\\{host}\Process({target})\% Processor Time": target_cpu,
        rf"\\{host}\Process({target})\% Privileged Time": [2.0] * intervals,
        rf"\\{host}\Process({target})\% User Time": [20.0] * intervals,
        rf"\\{host}\Process({target})\Private Bytes": [4.0e8] * intervals,
        rf"\\{host}\Process({target})\Priority Base": [8.0] * intervals,
        rf"\\{host}\Process(_Total)\% Processor Time": [50.0] * intervals,
        rf"\\{host}\Process(svchost)\% Processor Time": [1.0] * intervals,
    }


def write_capture(path: Path, columns: Dict[str, List[Optional[float]]], **kwargs) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(pdh_csv(columns, **kwargs), encoding="utf-8")
    return path


@pytest.fixture
def capture_builder():
    """Expose the capture builder helpers to tests."""

    class Builder:
        csv = staticmethod(pdh_csv)
        fleet_columns = staticmethod(fleet_columns)
        write = staticmethod(write_capture)

    return Builder


# ============================================================================
# Decoder Fixtures
# ============================================================================


class FakeDecoder:
    """
    Stand-in for the decoder subprocess.

    Copies the input file to the ``-o`` path. ``fail_filtered`` fails every
    attempt that passes a counter filter; ``fail_always`` fails every attempt.
    """

    def __init__(self):
        self.calls: List[List[str]] = []
        self.fail_filtered = False
        self.fail_always = False
        self.error_output = "Error:\nNo valid counters.\nThe command did not complete.\n"

    def __call__(self, args, cwd=None, timeout=None) -> CommandResult:
        args = [str(a) for a in args]
        self.calls.append(args)
        filtered = "-cf" in args
        if self.fail_always or (filtered and self.fail_filtered):
            return CommandResult(returncode=1, stdout=self.error_output, stderr="")

        output = Path(args[args.index("-o") + 1])
        shutil.copyfile(args[1], output)
        return CommandResult(returncode=0, stdout="The command completed successfully.\n", stderr="")


@pytest.fixture
def fake_decoder():
    decoder = FakeDecoder()
    with patch("capdiag.normalizer.capture_normalizer.run_command", side_effect=decoder):
        yield decoder


@pytest.fixture
def decoder_binary(temp_dir):
    """An existing file standing in for the decoder executable."""
    binary = temp_dir / "relog.exe"
    binary.write_bytes(b"")
    return binary


@pytest.fixture
def normalizer(temp_dir, decoder_binary):
    from capdiag.normalizer import CaptureNormalizer

    return CaptureNormalizer(decoder_binary, work_dir=temp_dir / "work")


@pytest.fixture
def analyzer(normalizer):
    from capdiag.analysis import CaptureAnalyzer
    from capdiag.reader import SampleStreamReader

    return CaptureAnalyzer(normalizer, SampleStreamReader())
