"""
Unit tests for capture file discovery.
"""

import pytest

from capdiag.discovery import discover_capture_files
from capdiag.validation import DiscoveryError


@pytest.mark.unit
class TestDiscoverCaptureFiles:
    """Test cases for recursive capture discovery."""

    def test_recursive_sorted_discovery(self, temp_dir):
        (temp_dir / "west").mkdir()
        (temp_dir / "east" / "node1").mkdir(parents=True)
        (temp_dir / "west" / "b.blg").write_bytes(b"xx")
        (temp_dir / "east" / "node1" / "a.blg").write_bytes(b"x")
        (temp_dir / "notes.txt").write_text("ignore me")

        captures = discover_capture_files(temp_dir)

        assert [c.relative_path for c in captures] == ["east/node1/a.blg", "west/b.blg"]
        assert captures[0].size_bytes == 1
        assert captures[1].name == "b.blg"
        assert captures[0].path.is_absolute()

    def test_identical_base_names_are_distinct(self, temp_dir):
        for folder in ("a", "b"):
            (temp_dir / folder).mkdir()
            (temp_dir / folder / "capture.blg").write_bytes(b"data")

        captures = discover_capture_files(temp_dir)

        assert len(captures) == 2
        assert len({c.relative_path for c in captures}) == 2

    def test_overlapping_patterns_return_each_file_once(self, temp_dir):
        (temp_dir / "one.blg").write_bytes(b"1")

        captures = discover_capture_files(temp_dir, patterns=["*.blg", "one.*"])

        assert len(captures) == 1

    def test_empty_files_are_still_discovered(self, temp_dir):
        (temp_dir / "empty.blg").write_bytes(b"")

        captures = discover_capture_files(temp_dir)

        assert captures[0].size_bytes == 0

    def test_no_matches_raises(self, temp_dir):
        (temp_dir / "other.csv").write_text("x")

        with pytest.raises(DiscoveryError) as exc_info:
            discover_capture_files(temp_dir)
        assert exc_info.value.reason == "no_input_files"

    def test_missing_root_raises(self, temp_dir):
        with pytest.raises(DiscoveryError):
            discover_capture_files(temp_dir / "does-not-exist")

    def test_extension_match_ignores_case(self, temp_dir):
        (temp_dir / "x").mkdir()
        (temp_dir / "x" / "HOST.BLG").write_bytes(b"1")
        (temp_dir / "x" / "other.Blg").write_bytes(b"2")

        captures = discover_capture_files(temp_dir)

        assert [c.relative_path for c in captures] == ["x/HOST.BLG", "x/other.Blg"]
