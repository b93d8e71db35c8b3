"""
Managed thread pool for capture analysis workers.

Wraps ThreadPoolExecutor with lifecycle checks, task statistics and tracking
of in-flight futures. Worker count is clamped to the available processing
units when the pool starts.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from ..system.cpu import bound_concurrency
from ..validation import ErrorSeverity, handle_error

logger = logging.getLogger(__name__)


@dataclass
class WorkerPoolConfig:
    """Configuration for the analysis worker pool."""

    max_workers: int = 4
    thread_name_prefix: str = "CaptureWorker"
    shutdown_timeout: float = 10.0


class ManagedWorkerPool:
    """
    ThreadPoolExecutor with statistics and guarded lifecycle.

    Usable as a context manager; ``start`` on enter, ``shutdown(wait=True)``
    on exit.
    """

    def __init__(self, config: WorkerPoolConfig):
        self.config = config
        self.executor: Optional[ThreadPoolExecutor] = None
        self.active_futures: Set[Future] = set()
        self.is_shutdown = False
        self.worker_count = 0
        self._lock = threading.Lock()

        self.stats = {
            "tasks_submitted": 0,
            "tasks_completed": 0,
            "tasks_failed": 0,
            "tasks_cancelled": 0,
        }

    def start(self) -> None:
        """
        Start the executor.

        Raises:
            RuntimeError: If the pool was already started
        """
        if self.executor is not None:
            raise RuntimeError("Worker pool already started")

        try:
            self.worker_count = bound_concurrency(self.config.max_workers)
            self.executor = ThreadPoolExecutor(
                max_workers=self.worker_count,
                thread_name_prefix=self.config.thread_name_prefix,
            )
            self.is_shutdown = False
            logger.info(f"Started worker pool with {self.worker_count} workers")
        except Exception as e:
            handle_error(
                error=e,
                context="starting worker pool",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger,
            )

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Submit a task.

        Raises:
            RuntimeError: If the pool is not started or already shut down
        """
        if self.executor is None:
            raise RuntimeError("Worker pool not started")
        if self.is_shutdown:
            raise RuntimeError("Worker pool is shutdown")

        future = self.executor.submit(fn, *args, **kwargs)
        with self._lock:
            self.stats["tasks_submitted"] += 1
            self.active_futures.add(future)
        future.add_done_callback(self._task_completed)
        return future

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        if self.executor is None or self.is_shutdown:
            return

        try:
            self.is_shutdown = True
            self.executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            logger.debug("Worker pool shutdown completed" if wait else "Worker pool shutdown initiated")
        except Exception as e:
            handle_error(
                error=e,
                context="shutting down worker pool",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
        finally:
            self.executor = None
            with self._lock:
                self.active_futures.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = self.stats.copy()
            stats["active_futures"] = len(self.active_futures)

        stats["is_shutdown"] = self.is_shutdown
        stats["worker_count"] = self.worker_count
        stats["success_rate"] = stats["tasks_completed"] / max(1, stats["tasks_submitted"]) * 100
        return stats

    def _task_completed(self, future: Future) -> None:
        with self._lock:
            self.active_futures.discard(future)
            if future.cancelled():
                self.stats["tasks_cancelled"] += 1
            elif future.exception() is not None:
                self.stats["tasks_failed"] += 1
            else:
                self.stats["tasks_completed"] += 1

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
