"""Path classification helpers for export bundles."""

from pathlib import Path
from takeout_organizer.common import normalize_path

__all__ = ['normalize_path', 'should_scan_file', 'is_sidecar']

# System files to exclude (cross-platform)
SYSTEM_FILES = {
    'thumbs.db',      # Windows thumbnail cache
    'desktop.ini',    # Windows folder settings
    '.ds_store',      # macOS folder metadata
    'icon\r',         # macOS custom folder icon (has literal carriage return!)
}

# Export bookkeeping files that are neither media nor per-file sidecars
EXPORT_METADATA_FILES = {
    'metadata.json',
    'print-subscriptions.json',
    'shared_album_comments.json',
    'user-generated-memory-titles.json',
    'archive_browser.html',
}

IGNORED_EXTENSIONS = {'.html', '.htm'}

# Temporary file extensions to exclude
TEMP_EXTENSIONS = {'.tmp', '.temp', '.cache', '.bak', '.swp'}

SIDECAR_EXTENSION = '.json'


def should_scan_file(path: Path) -> bool:
    """
    Determine if a file takes part in the organize run at all.
    
    This does NOT check file content. It only excludes system files,
    export bookkeeping files and temporary files; whatever remains is
    either a sidecar or a media candidate.
    
    Hidden files are NOT excluded: they may be valid media files
    (e.g., .facebook_865716343.jpg).
    
    Args:
        path: Path to check
        
    Returns:
        True if the file should be considered
    """
    filename = path.name.lower()
    
    if filename in SYSTEM_FILES:
        return False
    
    if filename in EXPORT_METADATA_FILES:
        return False
    
    suffix = path.suffix.lower()
    if suffix in IGNORED_EXTENSIONS or suffix in TEMP_EXTENSIONS:
        return False
    
    return True


def is_sidecar(path: Path) -> bool:
    """Return True for per-file JSON metadata sidecars."""
    return path.name.lower().endswith(SIDECAR_EXTENSION)
