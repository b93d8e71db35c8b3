"""
Capture-side data models.

These structures describe a capture file and the typed samples decoded from it:
classified counter paths, individual samples, per-counter series and the
per-interval view the diagnostic engine consumes.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# "sqlservr:4242" in Process V2, "sqlservr#1" for the second legacy sqlservr.
_PID_SUFFIX_RE = re.compile(r"^(.*):(\d+)$")
_INDEX_SUFFIX_RE = re.compile(r"^(.*)#(\d+)$")


class MetricKind(Enum):
    """Recognized counter kinds, decided once per counter path."""

    CPU = "cpu"
    PRIVILEGED = "privileged"
    USER = "user"
    MEMORY = "memory"
    PRIORITY = "priority"
    SCHEDULING_PRESSURE = "scheduling_pressure"
    DISK_THROUGHPUT = "disk_throughput"
    UNRECOGNIZED = "unrecognized"


# Kinds that are reported per process instance.
PROCESS_METRIC_KINDS = (
    MetricKind.CPU,
    MetricKind.PRIVILEGED,
    MetricKind.USER,
    MetricKind.MEMORY,
    MetricKind.PRIORITY,
)


class CounterGeneration(IntEnum):
    """Source rank of a counter set; higher values win de-duplication."""

    LEGACY = 1
    V2 = 2


@dataclass(frozen=True)
class CaptureFile:
    """
    A capture discovered under the source root.

    Attributes:
        path: Absolute path of the capture.
        size_bytes: File length at discovery time.
        relative_path: POSIX path relative to the discovery root. Unique per run.
    """

    path: Path
    size_bytes: int
    relative_path: str

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class CounterPath:
    """A raw counter path split into its parts and classified."""

    raw: str
    host: Optional[str]
    object_name: str
    instance: Optional[str]
    counter: str
    kind: MetricKind
    generation: CounterGeneration = CounterGeneration.LEGACY

    @property
    def is_recognized(self) -> bool:
        return self.kind is not MetricKind.UNRECOGNIZED

    @property
    def is_process_metric(self) -> bool:
        return self.kind in PROCESS_METRIC_KINDS

    @property
    def process_name(self) -> str:
        """Instance label without its ``:pid`` (V2) or ``#n`` (legacy) suffix."""
        name = self.instance or ""
        if self.generation is CounterGeneration.V2:
            match = _PID_SUFFIX_RE.match(name)
            if match:
                name = match.group(1)
        match = _INDEX_SUFFIX_RE.match(name)
        return match.group(1) if match else name

    @property
    def process_id(self) -> Optional[int]:
        """Process id carried by a ``Process V2`` label, None otherwise."""
        if self.generation is not CounterGeneration.V2 or not self.instance:
            return None
        match = _PID_SUFFIX_RE.match(self.instance)
        return int(match.group(2)) if match else None

    @property
    def instance_index(self) -> int:
        """Legacy ``#n`` duplicate-name index; 0 for the first process of a name."""
        match = _INDEX_SUFFIX_RE.match(self.instance or "")
        return int(match.group(2)) if match else 0

    def logical_key(self, ordinal: Optional[int] = None) -> Tuple[str, str, int, MetricKind]:
        """
        Key shared by both counter generations reporting the same metric.

        ``ordinal`` ranks the process among same-named processes on the host.
        Legacy labels carry it as ``#n``; V2 labels carry a pid instead, so the
        caller ranks those pids and passes the rank in.
        """
        return (
            (self.host or "").lower(),
            self.process_name.lower(),
            self.instance_index if ordinal is None else ordinal,
            self.kind,
        )


@dataclass(frozen=True)
class Sample:
    """One decoded counter value. ``value`` is None when the decoder's value was invalid."""

    counter_path: CounterPath
    timestamp: Optional[datetime]
    value: Optional[float]


@dataclass
class CounterSeries:
    """
    Values of one (host, instance, metric) counter aligned by interval index.

    Missing intervals stay None; consumers decide how to treat gaps.
    """

    host: str
    instance: Optional[str]
    kind: MetricKind
    values: List[Optional[float]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in self.values)


@dataclass
class IntervalReading:
    """Everything read from one capture interval."""

    index: int
    timestamp: Optional[datetime]
    scheduling_pressure: Optional[float] = None
    disk_throughput: Optional[float] = None
    # Values reported by aggregate pseudo-instances such as _Total.
    host_totals: Dict[MetricKind, Optional[float]] = field(default_factory=dict)
    processes: Dict[str, Dict[MetricKind, Optional[float]]] = field(default_factory=dict)
