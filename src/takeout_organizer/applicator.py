"""Writing sidecar metadata into media files.

ExiftoolApplicator shells out to exiftool once per file. Dates are
written in UTC ("YYYY:MM:DD HH:MM:SS"); QuickTimeUTC makes exiftool
treat video timestamps the same way. Coordinates are written as absolute
values with explicit N/S, E/W and above/below sea level refs.
"""

import logging
import os
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .errors import MetadataApplyError
from .models import Metadata

logger = logging.getLogger(__name__)

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"
DEFAULT_EXIFTOOL_TIMEOUT = 60.0


def format_exif_date(value: datetime) -> str:
    """Format a datetime as an EXIF date in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(EXIF_DATE_FORMAT)


class MetadataApplicator:
    """Base class for metadata writers."""

    name = "none"

    def apply(self, path: Path, metadata: Optional[Metadata]) -> bool:
        """
        Write metadata into a file in place.
        
        Args:
            path: File to modify
            metadata: Metadata to write
            
        Returns:
            True if anything was written, False if there was nothing to write
            
        Raises:
            MetadataApplyError: If writing failed
        """
        raise NotImplementedError


class NullApplicator(MetadataApplicator):
    """Applicator used when metadata writing is disabled."""

    def apply(self, path: Path, metadata: Optional[Metadata]) -> bool:
        return False


class ExiftoolApplicator(MetadataApplicator):
    """Writes metadata with the exiftool command line tool."""

    name = "exiftool"

    def __init__(self, exiftool_path: str = "exiftool", timeout: float = DEFAULT_EXIFTOOL_TIMEOUT):
        self.exiftool_path = exiftool_path
        self.timeout = timeout

    def build_tag_args(self, metadata: Optional[Metadata]) -> List[str]:
        """
        Build exiftool tag assignments for a metadata record.
        
        Returns:
            Tag arguments, empty when the record has nothing to write
        """
        if metadata is None or metadata.is_empty:
            return []
        
        args: List[str] = []
        
        if metadata.timestamp is not None:
            exif_date = format_exif_date(metadata.timestamp)
            args.append(f"-AllDates={exif_date}")
            args.append("-OffsetTimeOriginal=+00:00")
        
        if metadata.has_location:
            lat = metadata.latitude
            lon = metadata.longitude
            args.append(f"-GPSLatitude={abs(lat)}")
            args.append(f"-GPSLatitudeRef={'N' if lat >= 0 else 'S'}")
            args.append(f"-GPSLongitude={abs(lon)}")
            args.append(f"-GPSLongitudeRef={'E' if lon >= 0 else 'W'}")
            if metadata.altitude is not None:
                alt = metadata.altitude
                args.append(f"-GPSAltitude={abs(alt)}")
                # 0 = above sea level, 1 = below
                args.append(f"-GPSAltitudeRef={0 if alt >= 0 else 1}")
        
        if metadata.description:
            args.append(f"-Description={metadata.description}")
            args.append(f"-ImageDescription={metadata.description}")
        
        return args

    def build_command(self, path: Path, metadata: Optional[Metadata]) -> List[str]:
        tag_args = self.build_tag_args(metadata)
        if not tag_args:
            return []
        return [
            self.exiftool_path,
            "-overwrite_original",
            "-m",
            "-api", "QuickTimeUTC=1",
            *tag_args,
            str(path),
        ]

    def apply(self, path: Path, metadata: Optional[Metadata]) -> bool:
        cmd = self.build_command(path, metadata)
        if not cmd:
            return False
        
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise MetadataApplyError(
                f"exiftool not found: {self.exiftool_path}",
                path=str(path),
            ) from e
        except subprocess.TimeoutExpired as e:
            raise MetadataApplyError(
                f"exiftool timed out after {self.timeout}s",
                path=str(path),
            ) from e
        except OSError as e:
            raise MetadataApplyError(f"exiftool could not run: {e}", path=str(path)) from e
        
        if result.returncode != 0:
            stderr = (result.stderr or '').strip()
            raise MetadataApplyError(
                f"exiftool exited with code {result.returncode}: {stderr}",
                path=str(path),
                returncode=result.returncode,
            )
        
        logger.debug(f"Metadata applied: {{'path': {str(path)!r}}}")
        return True


def set_file_times(path: Path, when: datetime) -> None:
    """
    Set a file's access and modification times.
    
    Raises:
        OSError: If the times cannot be set
    """
    timestamp = when.timestamp()
    os.utime(path, (timestamp, timestamp))
