"""Availability check for exiftool, the external metadata writer."""

import logging
import shutil
from typing import Dict

logger = logging.getLogger(__name__)

EXIFTOOL_INSTALL_HINT = (
    "Install ExifTool to embed timestamps and locations: "
    "https://exiftool.org/ (Windows), 'brew install exiftool' (macOS), "
    "'sudo apt-get install libimage-exiftool-perl' (Debian/Ubuntu)"
)


def check_tool_availability(exiftool_path: str = 'exiftool') -> Dict[str, bool]:
    """
    Check availability of external tools used for metadata writing.
    
    Args:
        exiftool_path: Command name or path configured for exiftool
        
    Returns:
        Dictionary mapping tool names to availability status:
        - 'exiftool': For writing timestamps, GPS and descriptions (optional)
    """
    return {
        'exiftool': shutil.which(exiftool_path) is not None,
    }


def log_tool_status(exiftool_path: str = 'exiftool', enabled: bool = True) -> bool:
    """
    Log whether metadata writing can happen.
    
    A missing exiftool is not an error: files are still organized, and
    each file that had metadata gets a metadata_apply_failed entry.
    
    Returns:
        True if exiftool is enabled and available
    """
    if not enabled:
        logger.info("Tool disabled: {'tool': 'exiftool', 'reason': 'config'}")
        return False
    
    if check_tool_availability(exiftool_path)['exiftool']:
        logger.info(f"Tool available: {{'tool': 'exiftool', 'path': {exiftool_path!r}}}")
        return True
    
    logger.warning(
        f"Tool not found: {{'tool': 'exiftool', 'path': {exiftool_path!r}, "
        f"'effect': 'files are copied without embedded metadata', "
        f"'hint': {EXIFTOOL_INSTALL_HINT!r}}}"
    )
    return False
