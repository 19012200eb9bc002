"""Queue management for the organizer's worker pools.

Manages work and results queues with backpressure control.
"""

import logging
import threading
from queue import Full, Queue
from typing import Any, Tuple

logger = logging.getLogger(__name__)

# Seconds between shutdown checks while blocked on a queue
QUEUE_POLL_INTERVAL = 0.1


def put_until_shutdown(
    queue: Queue,
    item: Any,
    shutdown_event: threading.Event,
    timeout: float = QUEUE_POLL_INTERVAL,
) -> bool:
    """Put an item, retrying on a full queue until shutdown is requested.
    
    Returns:
        True if the item was queued, False if shutdown came first
    """
    while not shutdown_event.is_set():
        try:
            queue.put(item, timeout=timeout)
            return True
        except Full:
            continue
    return False


class QueueManager:
    """Manages queues for parallel processing with backpressure.
    
    Creates and manages:
    - Work queue: items for worker threads
    - Results queue: WorkResult objects for the coordinating thread
    
    Backpressure is provided by maxsize limits on queues.
    """
    
    def __init__(self, work_queue_maxsize: int = 1000, results_queue_maxsize: int = 1000):
        """Initialize queue manager.
        
        Args:
            work_queue_maxsize: Maximum size of work queue (backpressure limit)
            results_queue_maxsize: Maximum size of results queue (backpressure limit)
        """
        self.work_queue_maxsize = work_queue_maxsize
        self.results_queue_maxsize = results_queue_maxsize
        
        self.work_queue: Queue = None
        self.results_queue: Queue = None
        
        logger.debug(
            f"QueueManager initialized: {{'work_maxsize': {work_queue_maxsize}, "
            f"'results_maxsize': {results_queue_maxsize}}}"
        )
    
    def create_queues(self) -> Tuple[Queue, Queue]:
        """Create work and results queues.
        
        Returns:
            Tuple of (work_queue, results_queue)
        """
        self.work_queue = Queue(maxsize=self.work_queue_maxsize)
        self.results_queue = Queue(maxsize=self.results_queue_maxsize)
        return self.work_queue, self.results_queue
    
    def shutdown(self) -> None:
        self.work_queue = None
        self.results_queue = None
