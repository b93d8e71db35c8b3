"""
Processing-unit discovery used to bound worker concurrency.
"""

import logging
from typing import List

import psutil

logger = logging.getLogger(__name__)


def get_available_cores() -> List[int]:
    """Return the CPU core ids this process may run on.

    Uses the process affinity mask where the platform exposes one and falls
    back to the logical CPU count.
    """
    try:
        cores = psutil.Process().cpu_affinity()
        if cores:
            return sorted(cores)
    except (AttributeError, NotImplementedError, psutil.Error) as e:
        logger.debug(f"CPU affinity unavailable, falling back to cpu_count: {e}")

    count = psutil.cpu_count(logical=True) or 1
    return list(range(count))


def bound_concurrency(requested: int) -> int:
    """Clamp a requested worker count to [1, number of available cores]."""
    available = len(get_available_cores())
    effective = max(1, min(requested, available))
    if effective < requested:
        logger.info(
            f"Requested concurrency {requested} exceeds {available} available cores; using {effective}"
        )
    return effective
