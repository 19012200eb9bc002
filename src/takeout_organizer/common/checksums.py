"""Content hashing utilities."""

import hashlib
from pathlib import Path

# Default read size for hashing
HASH_CHUNK_SIZE = 1024 * 1024  # 1 MB chunks


def compute_sha256_hex(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 digest of an entire file.
    
    The file is streamed in fixed-size chunks so memory stays flat
    regardless of file size.
    
    Args:
        file_path: Path to the file
        chunk_size: Number of bytes read per iteration
        
    Returns:
        64-character lowercase hex digest
        
    Raises:
        OSError: If file cannot be read
    """
    hasher = hashlib.sha256()
    
    with open(file_path, 'rb') as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)
    
    return hasher.hexdigest()
