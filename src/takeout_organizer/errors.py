"""Error classes for the export organizer."""

import errno

from takeout_organizer.common import OrganizerError

__all__ = [
    'OrganizerError',
    'FilesystemFatalError',
    'MetadataParseError',
    'MetadataApplyError',
    'FATAL_ERRNOS',
    'is_fatal_write_error',
    'classify_error',
]


class FilesystemFatalError(OrganizerError):
    """The output tree cannot be written; the run must stop."""
    pass


class MetadataParseError(OrganizerError):
    """A sidecar file could not be parsed into metadata."""
    pass


class MetadataApplyError(OrganizerError):
    """The external metadata writer did not complete successfully."""
    pass


# errno values that make any further writes pointless
FATAL_ERRNOS = frozenset(
    code for code in (
        errno.ENOSPC,
        errno.EROFS,
        getattr(errno, 'EDQUOT', None),
        errno.EACCES,
        errno.EPERM,
    )
    if code is not None
)


def is_fatal_write_error(exception: BaseException) -> bool:
    """Return True if an OSError raised while writing output is fatal."""
    return isinstance(exception, OSError) and exception.errno in FATAL_ERRNOS


def classify_error(exception: Exception) -> str:
    """
    Classify an exception into an error category.
    
    Args:
        exception: The exception to classify
        
    Returns:
        Error category string: 'fatal', 'parse', 'apply', 'permission',
        'io', or 'unknown'
    """
    if isinstance(exception, FilesystemFatalError):
        return 'fatal'
    elif isinstance(exception, MetadataParseError):
        return 'parse'
    elif isinstance(exception, MetadataApplyError):
        return 'apply'
    elif isinstance(exception, PermissionError):
        return 'permission'
    elif isinstance(exception, OSError):
        return 'io'
    elif isinstance(exception, (ValueError, KeyError, TypeError)):
        return 'parse'
    else:
        return 'unknown'
