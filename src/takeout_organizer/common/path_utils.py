"""Path utilities for consistent path handling."""

import unicodedata
from pathlib import Path


def normalize_path(path: Path | str) -> str:
    """
    Normalize a path for consistent comparison and reporting.
    
    Applies:
    - Unicode NFC normalization (canonical composition)
    - Forward slash conversion
    
    Export bundles produced on macOS store decomposed (NFD) names while
    most other systems store composed ones; normalizing keeps ordering and
    equality checks stable across platforms.
    
    Args:
        path: Path object or string to normalize
        
    Returns:
        Normalized path string with forward slashes and NFC Unicode normalization
        
    Examples:
        >>> normalize_path(Path("café/résumé.jpg"))
        'café/résumé.jpg'
        >>> normalize_path(r"C:\\Users\\test\\photos")
        'C:/Users/test/photos'
    """
    normalized = unicodedata.normalize('NFC', str(path))
    return normalized.replace('\\', '/')
