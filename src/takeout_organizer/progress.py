"""Progress tracking for long-running pipeline phases.

Tracks and reports progress with ETA calculation.
"""

import logging
import time

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Tracks phase progress and calculates ETA.
    
    Features:
    - Items processed count
    - Processing rate (items/sec)
    - Estimated time remaining
    - Periodic logging (every N items)
    """
    
    def __init__(self, total_items: int, phase: str = "Delivery", log_interval: int = 100):
        """Initialize progress tracker.
        
        Args:
            total_items: Total number of items to process
            phase: Phase name used in log lines
            log_interval: Log progress every N items
        """
        self.total_items = total_items
        self.phase = phase
        self.log_interval = max(1, log_interval)
        
        self.items_processed = 0
        self.start_time = time.time()
        self.last_log_time = self.start_time
        self.last_log_count = 0
    
    def increment(self, count: int = 1) -> None:
        """Increment items processed counter."""
        before = self.items_processed
        self.items_processed += count
        
        if self.items_processed // self.log_interval > before // self.log_interval:
            self._log_progress()
    
    def get_progress(self) -> dict:
        """Get current progress statistics.
        
        Returns:
            Dict with progress metrics
        """
        elapsed_time = time.time() - self.start_time
        
        if elapsed_time > 0:
            rate = self.items_processed / elapsed_time
        else:
            rate = 0.0
        
        if self.total_items > 0:
            percentage = (self.items_processed / self.total_items) * 100
        else:
            percentage = 0.0
        
        remaining_items = max(0, self.total_items - self.items_processed)
        if rate > 0 and remaining_items > 0:
            eta_seconds = remaining_items / rate
        else:
            eta_seconds = 0.0
        
        return {
            "total_items": self.total_items,
            "items_processed": self.items_processed,
            "remaining_items": remaining_items,
            "percentage": percentage,
            "elapsed_seconds": elapsed_time,
            "rate_items_per_sec": rate,
            "eta_seconds": eta_seconds,
        }
    
    def _log_progress(self) -> None:
        progress = self.get_progress()
        
        # Instantaneous rate since last log
        current_time = time.time()
        time_delta = current_time - self.last_log_time
        count_delta = self.items_processed - self.last_log_count
        instant_rate = count_delta / time_delta if time_delta > 0 else 0.0
        
        logger.info(
            f"{self.phase} progress: {self.items_processed}/{self.total_items} "
            f"({progress['percentage']:.1f}%) - "
            f"{progress['rate_items_per_sec']:.1f} files/sec (avg), "
            f"{instant_rate:.1f} files/sec (current) - "
            f"ETA: {format_duration(progress['eta_seconds'])}"
        )
        
        self.last_log_time = current_time
        self.last_log_count = self.items_processed
    
    def log_final_summary(self) -> None:
        """Log final progress summary."""
        elapsed_time = time.time() - self.start_time
        rate = self.items_processed / elapsed_time if elapsed_time > 0 else 0.0
        
        logger.info(
            f"{self.phase} complete: {self.items_processed}/{self.total_items} files "
            f"in {format_duration(elapsed_time)} "
            f"({rate:.1f} files/sec average)"
        )


def format_duration(seconds: float) -> str:
    """Format seconds as human-readable time.
    
    Args:
        seconds: Time in seconds
        
    Returns:
        Formatted string (e.g., "2h 15m 30s")
    """
    if seconds <= 0:
        return "0s"
    
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    
    return " ".join(parts)
