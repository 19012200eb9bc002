"""Output filename collision resolution.

Names are compared case-folded so the output tree stays valid on
case-insensitive filesystems. A taken name is retried as
"<stem>_<N><ext>" with N counting up from 1.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Dict, Set

logger = logging.getLogger(__name__)


def suffixed_name(name: str, counter: int) -> str:
    """Insert a numeric suffix before the extension ("a.jpg", 2 -> "a_2.jpg")."""
    stem, ext = os.path.splitext(name)
    return f"{stem}_{counter}{ext}"


class CollisionTable:
    """Thread-safe registry of reserved filenames per destination directory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reserved: Dict[Path, Set[str]] = {}

    def reserve(self, directory: Path, desired_name: str) -> str:
        """
        Reserve a unique filename in a destination directory.
        
        Check-and-insert is atomic, so concurrent callers never receive
        the same name.
        
        Args:
            directory: Destination directory
            desired_name: Preferred filename
            
        Returns:
            desired_name if it was free, otherwise the first free suffixed name
        """
        with self._lock:
            taken = self._reserved.setdefault(directory, set())
            
            name = desired_name
            counter = 1
            while name.casefold() in taken:
                name = suffixed_name(desired_name, counter)
                counter += 1
            
            taken.add(name.casefold())
        
        if name != desired_name:
            logger.debug(
                f"Name collision resolved: {{'directory': {str(directory)!r}, "
                f"'desired': {desired_name!r}, 'reserved': {name!r}}}"
            )
        return name

    def __len__(self) -> int:
        with self._lock:
            return sum(len(names) for names in self._reserved.values())
