"""
Parallel work scheduler.

Fans captures out to a bounded set of worker threads and fans their outcomes
back in to a single collector. The collector runs in the calling thread and is
the only writer of the record list.
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, wait
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..models.capture import CaptureFile
from ..models.results import CaptureOutcome, CaptureState, FleetRunResult, HostDiagnostic
from ..system.cpu import bound_concurrency
from .worker_pool import ManagedWorkerPool, WorkerPoolConfig

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[CaptureFile], CaptureOutcome]


class _RecordCollector:
    """Accumulates outcomes and drops records whose key was already seen."""

    def __init__(self):
        self.records: List[HostDiagnostic] = []
        self.outcomes: List[CaptureOutcome] = []
        self._keys: Set[Tuple[str, str]] = set()

    def add(self, outcome: CaptureOutcome) -> None:
        self.outcomes.append(outcome)
        if not outcome.emitted:
            return
        record = outcome.record
        if record.key in self._keys:
            logger.warning(
                f"Dropping duplicate record for host '{record.host_name}' from {record.source_file}"
            )
            return
        self._keys.add(record.key)
        self.records.append(record)


class ParallelWorkScheduler:
    """
    Runs ``analyze_fn`` once per capture with at most ``max_concurrency``
    captures in flight.

    Concurrency is clamped to the available processing units. A finished
    capture frees its slot immediately. With one worker or one capture the
    work runs sequentially in the calling thread.
    """

    def __init__(
        self,
        analyze_fn: AnalyzeFn,
        max_concurrency: int = 4,
        poll_interval: float = 0.5,
        thread_name_prefix: str = "CaptureWorker",
        shutdown_timeout: float = 10.0,
    ):
        self.analyze_fn = analyze_fn
        self.max_concurrency = max_concurrency
        self.poll_interval = poll_interval
        self.thread_name_prefix = thread_name_prefix
        self.shutdown_timeout = shutdown_timeout
        self.last_pool_stats: Optional[Dict] = None

    def run(self, captures: Iterable[CaptureFile]) -> FleetRunResult:
        captures = list(captures)
        start = time.monotonic()
        collector = _RecordCollector()

        concurrency = bound_concurrency(self.max_concurrency)
        if concurrency == 1 or len(captures) <= 1:
            logger.info(f"Analyzing {len(captures)} capture(s) sequentially")
            for capture in captures:
                collector.add(self._run_one(capture))
        else:
            logger.info(f"Analyzing {len(captures)} captures with {concurrency} workers")
            self._run_parallel(captures, concurrency, collector)

        outcomes = sorted(collector.outcomes, key=lambda o: o.capture.relative_path)
        records = sorted(collector.records, key=lambda r: r.key)
        return FleetRunResult(
            records=records,
            outcomes=outcomes,
            elapsed_seconds=round(time.monotonic() - start, 3),
        )

    def _run_parallel(
        self, captures: List[CaptureFile], concurrency: int, collector: _RecordCollector
    ) -> None:
        config = WorkerPoolConfig(
            max_workers=concurrency,
            thread_name_prefix=self.thread_name_prefix,
            shutdown_timeout=self.shutdown_timeout,
        )
        queue = iter(captures)
        in_flight: Dict[Future, CaptureFile] = {}

        with ManagedWorkerPool(config) as pool:

            def fill() -> None:
                while len(in_flight) < pool.worker_count:
                    capture = next(queue, None)
                    if capture is None:
                        return
                    in_flight[pool.submit(self._run_one, capture)] = capture

            fill()
            while in_flight:
                done, _ = wait(in_flight, timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                for future in done:
                    capture = in_flight.pop(future)
                    collector.add(self._result_of(future, capture))
                fill()

            self.last_pool_stats = pool.get_stats()

    def _run_one(self, capture: CaptureFile) -> CaptureOutcome:
        try:
            return self.analyze_fn(capture)
        except Exception as e:
            logger.error(f"Worker for {capture.relative_path} raised: {e}", exc_info=True)
            return _failed(capture, e)

    @staticmethod
    def _result_of(future: Future, capture: CaptureFile) -> CaptureOutcome:
        try:
            return future.result()
        except Exception as e:
            logger.error(f"Worker for {capture.relative_path} raised: {e}")
            return _failed(capture, e)


def _failed(capture: CaptureFile, error: Exception) -> CaptureOutcome:
    return CaptureOutcome(
        capture=capture,
        state=CaptureState.FAILED,
        reason=f"unexpected_error: {type(error).__name__}: {error}",
        trail=[CaptureState.DISCOVERED, CaptureState.FAILED],
    )
