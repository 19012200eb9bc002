"""Content-signature based extension verification.

Uses the filetype library to read magic bytes (pure Python, no libmagic).
Detected MIME types map to canonical extensions through a static table,
so supporting a new format means adding one row.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import filetype

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_PREFIX_SIZE = 8192

# MIME type reported by filetype -> canonical lowercase extension (no dot)
CANONICAL_EXTENSIONS = {
    # Images
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/apng': 'png',
    'image/gif': 'gif',
    'image/webp': 'webp',
    'image/tiff': 'tiff',
    'image/bmp': 'bmp',
    'image/heic': 'heic',
    'image/heif': 'heic',
    'image/avif': 'avif',
    'image/jxl': 'jxl',
    'image/jpx': 'jp2',
    'image/vnd.ms-photo': 'jxr',
    'image/x-canon-cr2': 'cr2',
    # Videos
    'video/mp4': 'mp4',
    'video/quicktime': 'mov',
    'video/x-m4v': 'm4v',
    'video/3gpp': '3gp',
    'video/3gpp2': '3g2',
    'video/x-matroska': 'mkv',
    'video/webm': 'webm',
    'video/x-msvideo': 'avi',
    'video/x-ms-wmv': 'wmv',
    'video/mpeg': 'mpg',
    'video/x-flv': 'flv',
}

# Spellings that name the same format as a canonical extension
EXTENSION_ALIASES = {
    'jpeg': 'jpg',
    'jpe': 'jpg',
    'jfif': 'jpg',
    'tif': 'tiff',
    'heif': 'heic',
    'mpeg': 'mpg',
    '3gpp': '3gp',
    '3gpp2': '3g2',
}

# Declared extensions that are valid names for a detected container.
# Camera RAW formats built on TIFF are reported as image/tiff.
COMPATIBLE_EXTENSIONS = {
    'tiff': frozenset({
        'dng', 'nef', 'nrw', 'arw', 'srf', 'sr2', 'srw', 'pef',
        'cr2', '3fr', 'erf', 'kdc', 'mos', 'iiq',
    }),
}

# ISO base media brands that filetype folds into video/mp4
_FTYP_BRAND_TYPES = {
    b'3gp': ('video/3gpp', '3gp'),
    b'3g2': ('video/3gpp2', '3g2'),
}


class ExtensionStatus(str, Enum):
    VERIFIED = "verified"
    CORRECTED = "corrected"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExtensionVerdict:
    """Outcome of checking one filename against its content.
    
    Attributes:
        status: verified, corrected or unknown
        name: Filename to use from now on
        mime_type: Detected MIME type, None if unrecognized
        canonical_extension: Extension implied by content, None if unrecognized
    """
    status: ExtensionStatus
    name: str
    mime_type: Optional[str] = None
    canonical_extension: Optional[str] = None


def normalize_extension(extension: str) -> str:
    """Lowercase, strip the dot and resolve aliases ('.JPEG' -> 'jpg')."""
    ext = extension.lower().lstrip('.')
    return EXTENSION_ALIASES.get(ext, ext)


def read_signature(file_path: Path, prefix_size: int = DEFAULT_SIGNATURE_PREFIX_SIZE) -> bytes:
    """
    Read the leading bytes of a file.
    
    Raises:
        OSError: If file cannot be read
    """
    with open(file_path, 'rb') as f:
        return f.read(prefix_size)


def detect_media_type(header: bytes) -> tuple[Optional[str], Optional[str]]:
    """
    Identify a media format from leading bytes.
    
    Returns:
        (mime_type, canonical_extension), or (None, None) when the bytes are
        not a recognized image or video format
    """
    if not header:
        return None, None
    
    if header[4:8] == b'ftyp':
        branded = _FTYP_BRAND_TYPES.get(header[8:11])
        if branded is not None:
            return branded
    
    kind = filetype.guess(header)
    if kind is None:
        return None, None
    
    extension = CANONICAL_EXTENSIONS.get(kind.mime)
    if extension is None:
        # Recognized, but not a media format we organize (zip, pdf, ...)
        return kind.mime, None
    return kind.mime, extension


def verify_extension(file_name: str, header: bytes) -> ExtensionVerdict:
    """
    Check a filename's extension against its content signature.
    
    Equivalent spellings ("IMG.JPEG" for JPEG content) and formats that
    share a container ("IMG.DNG" for TIFF content) keep the declared name.
    A real mismatch swaps in the lowercase canonical extension.
    
    Args:
        file_name: Current filename
        header: Leading bytes of the file content
        
    Returns:
        ExtensionVerdict describing the outcome
    """
    mime_type, canonical = detect_media_type(header)
    
    if canonical is None:
        return ExtensionVerdict(
            status=ExtensionStatus.UNKNOWN,
            name=file_name,
            mime_type=mime_type,
        )
    
    stem, dot, declared = file_name.rpartition('.')
    if not dot or not stem:
        # No extension at all ("IMG_0001" or ".hidden")
        stem, declared = file_name, ''
    
    declared_ext = normalize_extension(declared)
    if declared and (
        declared_ext == canonical
        or declared_ext in COMPATIBLE_EXTENSIONS.get(canonical, ())
    ):
        return ExtensionVerdict(
            status=ExtensionStatus.VERIFIED,
            name=file_name,
            mime_type=mime_type,
            canonical_extension=canonical,
        )
    
    corrected = f"{stem}.{canonical}"
    logger.debug(
        f"Extension mismatch: {{'name': {file_name!r}, 'mime_type': {mime_type!r}, "
        f"'corrected': {corrected!r}}}"
    )
    return ExtensionVerdict(
        status=ExtensionStatus.CORRECTED,
        name=corrected,
        mime_type=mime_type,
        canonical_extension=canonical,
    )
