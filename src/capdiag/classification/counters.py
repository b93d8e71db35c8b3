"""
Counter path parsing and classification.

Decoder output names every column with a counter path such as
``\\\\SQL01\\Process V2(sqlservr)\\% Processor Time``. This module splits such
paths into host, object, instance and counter, and classifies each path once
into a MetricKind so the rest of the pipeline never re-matches strings.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.capture import CounterGeneration, CounterPath, MetricKind

logger = logging.getLogger(__name__)

_COUNTER_PATH_RE = re.compile(
    r"^(?:\\\\(?P<host>[^\\]+))?"
    r"\\(?P<object>[^\\(]+?)"
    r"(?:\((?P<instance>[^\\]*)\))?"
    r"\\(?P<counter>[^\\]+)$"
)

# Process enumeration namespaces and their source rank.
PROCESS_OBJECTS: Dict[str, CounterGeneration] = {
    "process": CounterGeneration.LEGACY,
    "process v2": CounterGeneration.V2,
}

PROCESS_COUNTERS: Dict[str, MetricKind] = {
    "% processor time": MetricKind.CPU,
    "% privileged time": MetricKind.PRIVILEGED,
    "% user time": MetricKind.USER,
    "private bytes": MetricKind.MEMORY,
    "priority base": MetricKind.PRIORITY,
}

# Host-level counters, only recognized on their _Total instance.
HOST_COUNTERS: Dict[Tuple[str, str], MetricKind] = {
    ("vm processor", "cpu stolen time"): MetricKind.SCHEDULING_PRESSURE,
    ("physicaldisk", "disk transfers/sec"): MetricKind.DISK_THROUGHPUT,
}

DEFAULT_AGGREGATE_INSTANCES = ("_Total", "Idle")

_PID_SUFFIX_RE = re.compile(r":\d+$")

_MAX_CACHE_SIZE = 65536
_classification_cache: Dict[str, CounterPath] = {}


def parse_counter_path(raw: str) -> CounterPath:
    """Split and classify a raw counter path.

    Paths that do not follow the ``[\\\\host]\\object[(instance)]\\counter`` shape
    are returned as UNRECOGNIZED with the raw text as the object name.

    Examples:
        >>> parse_counter_path(r"\\\\SQL01\\Process V2(sqlservr)\\% User Time").kind
        <MetricKind.USER: 'user'>
        >>> parse_counter_path(r"\\VM Processor(_Total)\\CPU stolen time").host is None
        True
    """
    cached = _classification_cache.get(raw)
    if cached is not None:
        return cached

    text = raw.strip().strip('"')
    match = _COUNTER_PATH_RE.match(text)
    if match is None:
        result = CounterPath(
            raw=raw,
            host=None,
            object_name=text,
            instance=None,
            counter="",
            kind=MetricKind.UNRECOGNIZED,
        )
    else:
        host = match.group("host") or None
        object_name = match.group("object").strip()
        instance = match.group("instance")
        counter = match.group("counter").strip()
        kind, generation = _classify(object_name, instance, counter)
        result = CounterPath(
            raw=raw,
            host=host,
            object_name=object_name,
            instance=instance,
            counter=counter,
            kind=kind,
            generation=generation,
        )

    if len(_classification_cache) < _MAX_CACHE_SIZE:
        _classification_cache[raw] = result
    return result


def _classify(
    object_name: str, instance: Optional[str], counter: str
) -> Tuple[MetricKind, CounterGeneration]:
    object_key = object_name.lower()
    counter_key = counter.lower()

    generation = PROCESS_OBJECTS.get(object_key)
    if generation is not None:
        kind = PROCESS_COUNTERS.get(counter_key, MetricKind.UNRECOGNIZED)
        if instance is None:
            kind = MetricKind.UNRECOGNIZED
        return kind, generation

    host_kind = HOST_COUNTERS.get((object_key, counter_key))
    if host_kind is not None and (instance is None or instance.lower() == "_total"):
        return host_kind, CounterGeneration.LEGACY

    return MetricKind.UNRECOGNIZED, CounterGeneration.LEGACY


def is_aggregate_instance(
    instance: Optional[str], aggregates: Iterable[str] = DEFAULT_AGGREGATE_INSTANCES
) -> bool:
    """True for pseudo-instances such as ``_Total`` and ``Idle`` (also ``Idle:0`` in V2)."""
    if instance is None:
        return False
    lowered = _PID_SUFFIX_RE.sub("", instance).lower()
    return any(lowered == a.lower() for a in aggregates)


def default_counter_filter() -> List[str]:
    """Counter paths requested from the decoder on the filtered attempt."""
    paths = [
        r"\VM Processor(_Total)\CPU stolen time",
        r"\PhysicalDisk(_Total)\Disk Transfers/sec",
    ]
    for object_name in ("Process", "Process V2"):
        for counter in ("% Processor Time", "% Privileged Time", "% User Time",
                        "Private Bytes", "Priority Base"):
            paths.append(f"\\{object_name}(*)\\{counter}")
    return paths


def clear_classification_cache() -> None:
    """Drop cached classifications (used by tests)."""
    _classification_cache.clear()
    logger.debug("Counter classification cache cleared")
