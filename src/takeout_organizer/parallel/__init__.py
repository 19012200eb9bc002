"""Parallel processing components for the organizer.

This package contains the thread pool infrastructure:
- Worker threads: Run one pipeline stage per work item
- Queue manager: Queue creation, backpressure and timed puts
- Worker pool: Start, feed, drain and join a set of worker threads
"""

from .queue_manager import QueueManager, put_until_shutdown
from .worker_pool import WorkerPool
from .worker_thread import WorkResult, worker_thread_main

__all__ = [
    "QueueManager",
    "WorkResult",
    "WorkerPool",
    "put_until_shutdown",
    "worker_thread_main",
]
