"""Content deduplication.

Every asset's full-content SHA-256 is registered in a FingerprintTable.
The canonical asset for a fingerprint is the minimum of
(category precedence, normalized source path): album copies win over
shared-album copies, which win over general ones, and the source path
breaks ties. Because the minimum is order-independent, the outcome does
not depend on which worker registered first.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from takeout_organizer.common import compute_sha256_hex
from takeout_organizer.common.checksums import HASH_CHUNK_SIZE

from .models import MatchedAsset

logger = logging.getLogger(__name__)


def compute_fingerprint(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Compute the content fingerprint of a file.
    
    Raises:
        OSError: If file cannot be read
    """
    return compute_sha256_hex(file_path, chunk_size=chunk_size)


class FingerprintTable:
    """Thread-safe fingerprint -> holders table.
    
    Writers call register() from any worker; decisions are read with
    canonical_for()/is_canonical() once every asset has been registered.
    An asset whose delivery failed is withdrawn, and the next holder in
    precedence order becomes canonical.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._holders: Dict[str, List[MatchedAsset]] = {}

    def register(self, fingerprint: str, asset: MatchedAsset) -> bool:
        """
        Register an asset under its fingerprint.
        
        Args:
            fingerprint: Content hash of the asset
            asset: The asset holding that content
            
        Returns:
            True if the asset is the canonical holder so far
        """
        with self._lock:
            holders = self._holders.setdefault(fingerprint, [])
            holders.append(asset)
            return _best(holders) is asset

    def canonical_for(self, fingerprint: str) -> Optional[MatchedAsset]:
        with self._lock:
            holders = self._holders.get(fingerprint)
            return _best(holders) if holders else None

    def is_canonical(self, asset: MatchedAsset) -> bool:
        """True when the asset is the copy of its content that gets written."""
        if asset.fingerprint is None:
            return True
        return self.canonical_for(asset.fingerprint) is asset

    def withdraw(self, asset: MatchedAsset) -> Optional[MatchedAsset]:
        """
        Remove an asset from its fingerprint's holders.
        
        Returns:
            The canonical holder afterwards, None when no copy is left
        """
        with self._lock:
            holders = self._holders.get(asset.fingerprint, [])
            holders[:] = [h for h in holders if h is not asset]
            return _best(holders) if holders else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._holders)


def _best(holders: List[MatchedAsset]) -> MatchedAsset:
    return min(holders, key=lambda a: a.precedence_key)
