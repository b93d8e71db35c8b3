"""
Capture execution for the capdiag package.

A managed thread pool and the sliding-window scheduler that fans captures out
to it and collects one outcome per capture.
"""

from .scheduler import ParallelWorkScheduler
from .worker_pool import ManagedWorkerPool, WorkerPoolConfig

__all__ = [
    "ParallelWorkScheduler",
    "ManagedWorkerPool",
    "WorkerPoolConfig",
]
