"""Common utilities shared across takeout_organizer modules."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import OrganizerError
from .path_utils import normalize_path
from .checksums import compute_sha256_hex
from .config_utils import auto_detect_io_workers

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'OrganizerError',
    'normalize_path',
    'compute_sha256_hex',
    'auto_detect_io_workers',
]
