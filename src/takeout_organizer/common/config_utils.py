"""Configuration utilities."""

import os


def get_cpu_count() -> int:
    """Get number of CPU cores, with fallback."""
    return os.cpu_count() or 4


def auto_detect_io_workers(multiplier: float = 2.0, min_workers: int = 2) -> int:
    """Auto-detect number of I/O worker threads.

    Args:
        multiplier: Multiplier for CPU count (e.g., 2.0 for 2x cores)
        min_workers: Minimum number of workers

    Returns:
        Number of I/O workers
    """
    cpu_count = get_cpu_count()
    workers = max(min_workers, int(cpu_count * multiplier))
    return workers
