"""
Capture file discovery.

Scans a source root recursively and returns every capture file found, with the
path relative to the root that downstream naming relies on.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Union

from ..models.capture import CaptureFile
from ..validation import DiscoveryError

logger = logging.getLogger(__name__)


def discover_capture_files(
    source_root: Union[str, Path], patterns: Iterable[str] = ("*.blg",)
) -> List[CaptureFile]:
    """Find capture files below ``source_root``.

    Patterns match case-insensitively, as on the Windows hosts that write
    captures. Files matching several patterns are returned once. Results are
    sorted by relative path so discovery order is stable between runs.

    Raises:
        DiscoveryError: If the root is missing or contains no matching files.
    """
    root = Path(source_root).expanduser()
    if not root.is_dir():
        raise DiscoveryError(f"Source root is not a directory: {root}", path=str(root))

    root = root.resolve()
    patterns = list(patterns)
    seen = {}
    for pattern in patterns:
        for path in root.rglob(pattern, case_sensitive=False):
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if relative in seen:
                continue
            try:
                size = path.stat().st_size
            except OSError as e:
                logger.warning(f"Cannot stat {path}, skipping: {e}")
                continue
            seen[relative] = CaptureFile(path=path, size_bytes=size, relative_path=relative)

    if not seen:
        raise DiscoveryError(
            f"No capture files matching {list(patterns)} under {root}", path=str(root)
        )

    captures = [seen[k] for k in sorted(seen)]
    total_mb = sum(c.size_bytes for c in captures) / (1024 * 1024)
    logger.info(f"Discovered {len(captures)} capture files ({total_mb:.1f} MB) under {root}")
    return captures
