"""Archive scanner for media export bundles.

Walks the input tree directory by directory, classifies every regular file
as a sidecar or a media candidate, and fixes each candidate's output
category from its position under the scan root.

Category folders (first path component under the scan root):
- general, Archive, Photos from YYYY      -> General
- shared, Untitled, Untitled(N)           -> SharedAlbum
- albums/<name>/...                       -> Album(name)
- any other folder <name>/...             -> Album(name)
"""

import logging
import os
import re
from pathlib import Path
from typing import Iterator, List

from .errors import FilesystemFatalError
from .models import DirectoryScope, MediaFileCandidate, OutputCategory, Sidecar
from .path_utils import is_sidecar, should_scan_file
from .report import ReportKind, RunReport

logger = logging.getLogger(__name__)

GENERAL_FOLDER_RE = re.compile(r'^(?:general|archive|photos from \d{4})$', re.IGNORECASE)
SHARED_FOLDER_RE = re.compile(r'^(?:shared|untitled(?:\s*\(\d+\))?)$', re.IGNORECASE)
ALBUMS_FOLDER = 'albums'


def resolve_scan_root(input_path: Path) -> Path:
    """Return the directory that holds the category folders.
    
    Takeout archives nest everything under "Takeout/Google Photos"; when
    that (or a bare "Google Photos") folder exists it becomes the scan root.
    """
    for candidate in (input_path / "Takeout" / "Google Photos", input_path / "Google Photos"):
        if candidate.is_dir():
            logger.debug(f"Using scan root: {{'path': {str(candidate)!r}}}")
            return candidate
    return input_path


def categorize(relative_path: Path) -> OutputCategory:
    """Derive the output category from a path relative to the scan root.
    
    Args:
        relative_path: File path relative to the scan root (at least two parts)
        
    Returns:
        The category implied by the file's top-level folder
    """
    parts = relative_path.parts
    top = parts[0]
    
    if GENERAL_FOLDER_RE.match(top):
        return OutputCategory.general()
    
    if SHARED_FOLDER_RE.match(top):
        return OutputCategory.shared_album()
    
    if top.lower() == ALBUMS_FOLDER:
        if len(parts) > 2:
            return OutputCategory.album(parts[1])
        # Loose file directly under albums/
        return OutputCategory.general()
    
    return OutputCategory.album(top)


def _list_dir(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return sorted(it, key=lambda entry: entry.name)


class ArchiveScanner:
    """Lazy, restartable scanner over an export bundle.
    
    Every call to scopes() (or iter()) starts a fresh walk. Unreadable
    subtrees are recorded as scan errors and skipped; an unreadable root
    raises FilesystemFatalError.
    """
    
    def __init__(self, input_path: Path, report: RunReport):
        self.input_path = input_path
        self.report = report
        self.scan_root = resolve_scan_root(input_path)
    
    def scopes(self) -> Iterator[DirectoryScope]:
        """Yield one DirectoryScope per directory holding media or sidecars.
        
        Directories are visited depth-first in sorted name order.
        
        Raises:
            FilesystemFatalError: If the scan root cannot be listed
        """
        try:
            root_entries = _list_dir(self.scan_root)
        except OSError as e:
            raise FilesystemFatalError(
                f"Cannot read input directory: {self.scan_root}",
                path=str(self.scan_root),
                error=str(e),
            ) from e
        
        logger.info(f"Starting scan: {{'path': {str(self.scan_root)!r}}}")
        
        directories = 0
        candidates = 0
        sidecars = 0
        pending: List[Path] = []
        
        for entry in reversed(root_entries):
            if entry.is_dir(follow_symlinks=False):
                pending.append(Path(entry.path))
            else:
                logger.debug(f"Skipping file outside category folders: {{'path': {entry.path!r}}}")
        
        while pending:
            directory = pending.pop()
            try:
                entries = _list_dir(directory)
            except OSError as e:
                self.report.add(
                    ReportKind.SCAN_ERROR,
                    directory,
                    f"Unreadable subtree skipped: {e}",
                )
                continue
            
            scope = DirectoryScope(directory=directory)
            subdirectories = []
            
            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        subdirectories.append(Path(entry.path))
                        continue
                    if not entry.is_file():
                        continue
                    
                    path = Path(entry.path)
                    if not should_scan_file(path):
                        continue
                    
                    if is_sidecar(path):
                        scope.sidecars.append(Sidecar(path=path))
                        continue
                    
                    stat = entry.stat()
                    scope.candidates.append(MediaFileCandidate(
                        path=path,
                        size=stat.st_size,
                        mtime=stat.st_mtime,
                        category=categorize(path.relative_to(self.scan_root)),
                    ))
                except OSError as e:
                    self.report.add(ReportKind.SCAN_ERROR, entry.path, f"Unreadable entry skipped: {e}")
            
            pending.extend(reversed(subdirectories))
            directories += 1
            
            if scope.candidates or scope.sidecars:
                candidates += len(scope.candidates)
                sidecars += len(scope.sidecars)
                yield scope
        
        logger.info(
            f"Scan complete: {{'directories': {directories}, 'media_files': {candidates}, 'sidecars': {sidecars}}}"
        )
    
    def __iter__(self) -> Iterator[MediaFileCandidate]:
        for scope in self.scopes():
            yield from scope.candidates
