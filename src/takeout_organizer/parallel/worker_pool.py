"""Thread pool that runs one pipeline stage over a stream of items.

The coordinating thread feeds items with submit(), and every result is
handed back to it through the on_result callback. Callbacks therefore
run on a single thread and need no locking of their own.

While feeding is blocked on a full work queue, the pool drains the
results queue, so workers never deadlock on a full results queue.
"""

import logging
import threading
from queue import Empty, Full
from typing import Any, Callable, List, Optional

from ..errors import FilesystemFatalError
from .queue_manager import QUEUE_POLL_INTERVAL, QueueManager
from .worker_thread import WorkResult, worker_thread_main

logger = logging.getLogger(__name__)


class WorkerPool:
    """Fixed-size pool of worker threads for one stage.
    
    Usage:
        with WorkerPool(task, on_result, worker_threads=8) as pool:
            for item in items:
                if not pool.submit(item):
                    break
            pool.finish()
        pool.raise_if_fatal()
    """
    
    def __init__(
        self,
        task: Callable[[Any], Any],
        on_result: Callable[[WorkResult], None],
        worker_threads: int = 2,
        queue_maxsize: int = 1000,
        shutdown_event: Optional[threading.Event] = None,
        name: str = "Worker",
    ):
        """Initialize worker pool.
        
        Args:
            task: Callable run by a worker once per item
            on_result: Callback run on the coordinating thread per result
            worker_threads: Number of worker threads
            queue_maxsize: Queue size limit for backpressure
            shutdown_event: Shared event; a fresh one is created if omitted
            name: Thread name prefix
        """
        self.task = task
        self.on_result = on_result
        self.worker_threads = max(1, worker_threads)
        self.name = name
        self.shutdown_event = shutdown_event or threading.Event()
        
        self.queue_manager = QueueManager(
            work_queue_maxsize=queue_maxsize,
            results_queue_maxsize=queue_maxsize,
        )
        self.worker_thread_list: List[threading.Thread] = []
        self.submitted = 0
        self.completed = 0
        
        self._fatal_lock = threading.Lock()
        self.fatal_error: Optional[FilesystemFatalError] = None
    
    def __enter__(self) -> "WorkerPool":
        self.start()
        return self
    
    def __exit__(self, exc_type, exc, tb) -> None:
        # Workers still running here means finish() was never reached
        if self.worker_thread_list:
            self.shutdown_event.set()
        self._join_workers()
        self.queue_manager.shutdown()
    
    def start(self) -> None:
        """Create queues and start worker threads."""
        work_queue, results_queue = self.queue_manager.create_queues()
        
        for i in range(self.worker_threads):
            thread = threading.Thread(
                target=worker_thread_main,
                args=(
                    i,
                    work_queue,
                    results_queue,
                    self.task,
                    self.shutdown_event,
                    self._record_fatal,
                ),
                name=f"{self.name}-{i}",
                daemon=True,
            )
            thread.start()
            self.worker_thread_list.append(thread)
        
        logger.debug(f"Started worker threads: {{'pool': {self.name!r}, 'count': {self.worker_threads}}}")
    
    def submit(self, item: Any) -> bool:
        """Queue one item, draining results while the work queue is full.
        
        Returns:
            True if queued, False if the pool is shutting down
        """
        work_queue = self.queue_manager.work_queue
        while not self.shutdown_event.is_set():
            try:
                work_queue.put(item, timeout=QUEUE_POLL_INTERVAL)
                self.submitted += 1
                return True
            except Full:
                self.drain()
        return False
    
    def drain(self) -> int:
        """Deliver every result that is ready without waiting.
        
        Returns:
            Number of results delivered
        """
        results_queue = self.queue_manager.results_queue
        delivered = 0
        while True:
            try:
                result = results_queue.get_nowait()
            except Empty:
                return delivered
            try:
                self.completed += 1
                delivered += 1
                self.on_result(result)
            finally:
                results_queue.task_done()
    
    def finish(self) -> None:
        """Stop accepting work, wait for workers and deliver all results."""
        work_queue = self.queue_manager.work_queue
        
        # One sentinel per worker
        sentinels = 0
        while sentinels < self.worker_threads and not self.shutdown_event.is_set():
            try:
                work_queue.put(None, timeout=QUEUE_POLL_INTERVAL)
                sentinels += 1
            except Full:
                self.drain()
        
        while any(t.is_alive() for t in self.worker_thread_list):
            results_queue = self.queue_manager.results_queue
            try:
                result = results_queue.get(timeout=QUEUE_POLL_INTERVAL)
            except Empty:
                continue
            try:
                self.completed += 1
                self.on_result(result)
            finally:
                results_queue.task_done()
        
        self._join_workers()
        self.drain()
        
        logger.debug(
            f"Worker pool finished: {{'pool': {self.name!r}, 'submitted': {self.submitted}, "
            f"'completed': {self.completed}}}"
        )
    
    def raise_if_fatal(self) -> None:
        """Re-raise the first fatal error any worker hit."""
        if self.fatal_error is not None:
            raise self.fatal_error
    
    def _record_fatal(self, error: FilesystemFatalError) -> None:
        with self._fatal_lock:
            if self.fatal_error is None:
                self.fatal_error = error
    
    def _join_workers(self) -> None:
        for thread in self.worker_thread_list:
            thread.join()
        self.worker_thread_list = []
