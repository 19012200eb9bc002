"""Worker thread for the organizer's parallel stages.

Each worker:
1. Pulls an item from the work queue
2. Runs the stage task on it
3. Puts a WorkResult in the results queue

A FilesystemFatalError raised by the task sets the shared shutdown event,
so every other worker and the feeding thread stop at their next poll.
Any other exception is contained to the item that raised it.
"""

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Optional

from ..errors import FilesystemFatalError, classify_error
from .queue_manager import QUEUE_POLL_INTERVAL, put_until_shutdown

logger = logging.getLogger(__name__)


@dataclass
class WorkResult:
    """Outcome of one work item.
    
    Attributes:
        item: The work item as submitted
        value: Task return value, None on error
        error: Exception raised by the task, if any
        error_category: classify_error() of the exception
    """
    item: Any
    value: Any = None
    error: Optional[BaseException] = None
    error_category: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def fatal(self) -> bool:
        return isinstance(self.error, FilesystemFatalError)


def worker_thread_main(
    thread_id: int,
    work_queue: Queue,
    results_queue: Queue,
    task: Callable[[Any], Any],
    shutdown_event: threading.Event,
    on_fatal: Callable[[FilesystemFatalError], None],
) -> None:
    """Main function for a worker thread.
    
    Args:
        thread_id: Unique identifier for this worker thread
        work_queue: Queue of items to process (None is the stop sentinel)
        results_queue: Queue for WorkResult objects
        task: Callable run once per item
        shutdown_event: Event to signal shutdown
        on_fatal: Called with the first fatal error this worker hits
    """
    logger.debug(f"Worker thread started: {{'thread_id': {thread_id}}}")
    
    processed_count = 0
    error_count = 0
    
    try:
        while not shutdown_event.is_set():
            try:
                work_item = work_queue.get(timeout=QUEUE_POLL_INTERVAL)
            except Empty:
                continue
            
            try:
                # Check for sentinel
                if work_item is None:
                    break
                
                try:
                    result = WorkResult(item=work_item, value=task(work_item))
                    processed_count += 1
                except FilesystemFatalError as e:
                    error_count += 1
                    logger.error(
                        f"Fatal filesystem error: {{'thread_id': {thread_id}, 'error': {str(e)!r}}}"
                    )
                    on_fatal(e)
                    shutdown_event.set()
                    result = WorkResult(item=work_item, error=e, error_category=classify_error(e))
                except Exception as e:
                    error_count += 1
                    logger.error(
                        f"Worker task failed: {{'thread_id': {thread_id}, 'error': {str(e)!r}}}",
                        exc_info=True
                    )
                    result = WorkResult(item=work_item, error=e, error_category=classify_error(e))
                
                if not put_until_shutdown(results_queue, result, shutdown_event):
                    break
            finally:
                work_queue.task_done()
    
    finally:
        logger.debug(
            f"Worker thread shutting down: {{'thread_id': {thread_id}, "
            f"'processed': {processed_count}, 'errors': {error_count}}}"
        )
