"""Parser for Google Takeout JSON sidecar files."""

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from takeout_organizer.errors import MetadataParseError
from takeout_organizer.models import Metadata

logger = logging.getLogger(__name__)

# Formats seen in the "formatted" field of Takeout timestamp objects
_FORMATTED_TIMESTAMP_FORMATS = [
    "%b %d, %Y, %I:%M:%S %p UTC",  # Jan 1, 2020, 12:00:00 AM UTC
    "%b %d, %Y, %I:%M:%S %p",      # Jan 1, 2020, 12:00:00 AM
    "%Y-%m-%d %H:%M:%S UTC",       # 2020-01-01 00:00:00 UTC
    "%Y-%m-%d %H:%M:%S",           # 2020-01-01 00:00:00
]


def read_sidecar(json_path: Path, warnings: Optional[List[str]] = None) -> Metadata:
    """
    Read and parse a JSON sidecar file.
    
    Args:
        json_path: Path to JSON sidecar file
        warnings: Optional list that collects non-fatal field problems
        
    Returns:
        Parsed Metadata
        
    Raises:
        MetadataParseError: If the file cannot be read or parsed
    """
    try:
        raw = json_path.read_bytes()
    except OSError as e:
        raise MetadataParseError(
            f"Cannot read sidecar: {e}", path=str(json_path)
        ) from e
    
    return parse_sidecar(raw, source=str(json_path), warnings=warnings)


def parse_sidecar(
    raw: bytes | str,
    source: str = "<sidecar>",
    warnings: Optional[List[str]] = None,
) -> Metadata:
    """
    Parse the contents of a Takeout JSON sidecar into Metadata.
    
    Absent fields stay None. An empty description and a (0.0, 0.0)
    location are Takeout's way of saying "not set" and are treated as
    absent.
    
    Args:
        raw: Sidecar contents
        source: Name used in error messages
        warnings: Optional list that collects non-fatal field problems,
            such as a timestamp whose format is not recognized
        
    Returns:
        Parsed Metadata
        
    Raises:
        MetadataParseError: If the content is not a well-formed sidecar
    """
    try:
        text = raw.decode('utf-8-sig') if isinstance(raw, bytes) else raw
        data = json.loads(text)
    except UnicodeDecodeError as e:
        raise MetadataParseError(f"Sidecar is not valid UTF-8: {e}", path=source) from e
    except (ValueError, RecursionError) as e:
        # JSONDecodeError, integer digit limits and pathological nesting
        raise MetadataParseError(f"Invalid JSON: {e}", path=source) from e
    
    if not isinstance(data, dict):
        raise MetadataParseError(
            f"Expected JSON object, got {type(data).__name__}", path=source
        )
    
    try:
        capture_time = _parse_timestamp_field(data, 'photoTakenTime', warnings)
        creation_time = _parse_timestamp_field(data, 'creationTime', warnings)
        
        # geoDataExif is only consulted when geoData is missing or unset
        latitude, longitude, altitude = _parse_geo_data(data.get('geoData'))
        if latitude is None:
            latitude, longitude, altitude = _parse_geo_data(data.get('geoDataExif'))
        
        description = _optional_str(data, 'description')
        title = _optional_str(data, 'title')
    except (TypeError, ValueError, OverflowError) as e:
        raise MetadataParseError(f"Malformed sidecar field: {e}", path=source) from e
    
    metadata = Metadata(
        capture_time=capture_time,
        creation_time=creation_time,
        latitude=latitude,
        longitude=longitude,
        altitude=altitude,
        description=description or None,
        original_filename=title or None,
    )
    
    timestamp = metadata.timestamp.isoformat() if metadata.timestamp else None
    logger.debug(
        f"Parsed sidecar: {{'source': {source!r}, "
        f"'timestamp': {timestamp!r}, "
        f"'has_location': {metadata.has_location}}}"
    )
    return metadata


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value.strip()


def _parse_timestamp_field(
    data: Dict[str, Any],
    key: str,
    warnings: Optional[List[str]] = None,
) -> Optional[datetime]:
    """
    Parse a Takeout timestamp object such as photoTakenTime.
    
    The object carries "timestamp" (epoch seconds, usually as a string)
    and "formatted" (human readable). The epoch value wins.
    """
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TypeError(f"'{key}' must be an object, got {type(value).__name__}")
    
    if value.get('timestamp') is not None:
        return _parse_epoch(value['timestamp'], key)
    
    formatted = value.get('formatted')
    if formatted is not None:
        if not isinstance(formatted, str):
            raise TypeError(f"'{key}.formatted' must be a string")
        parsed = _parse_formatted_timestamp(formatted)
        if parsed is None and formatted.strip() and warnings is not None:
            warnings.append(f"Unrecognized '{key}.formatted' value: {formatted!r}")
        return parsed
    
    return None


def _parse_epoch(raw: Any, key: str) -> datetime:
    # bool is an int subclass; reject it explicitly
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        raise TypeError(f"'{key}.timestamp' must be a number or numeric string")
    
    seconds = float(raw)
    if not math.isfinite(seconds):
        raise ValueError(f"'{key}.timestamp' is not finite")
    
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def _parse_formatted_timestamp(formatted: str) -> Optional[datetime]:
    """
    Parse a formatted timestamp string.
    
    Google uses various formats like:
    - "Jan 1, 2020, 12:00:00 AM UTC"
    - "2020-01-01T00:00:00Z"
    
    Returns:
        UTC datetime, or None if the format is not recognized
    """
    text = formatted.strip()
    if not text:
        return None
    
    if 'T' in text:
        try:
            dt = datetime.fromisoformat(text.replace('Z', '+00:00'))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt.astimezone(timezone.utc)
        except ValueError:
            pass
    
    # Some locales use a narrow no-break space before AM/PM
    text = text.replace('\u202f', ' ')
    for fmt in _FORMATTED_TIMESTAMP_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
            return dt.replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    
    logger.debug(f"Could not parse timestamp format: {{'formatted': {formatted!r}}}")
    return None


def _parse_geo_data(
    geo_data: Any,
) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    """
    Parse a geoData object into (latitude, longitude, altitude).
    
    Returns (None, None, None) when the object is missing, incomplete,
    or holds Takeout's (0.0, 0.0) placeholder.
    """
    if geo_data is None:
        return None, None, None
    if not isinstance(geo_data, dict):
        raise TypeError(f"geo data must be an object, got {type(geo_data).__name__}")
    
    latitude = _optional_float(geo_data, 'latitude')
    longitude = _optional_float(geo_data, 'longitude')
    altitude = _optional_float(geo_data, 'altitude')
    
    if latitude is None or longitude is None:
        return None, None, None
    if latitude == 0.0 and longitude == 0.0:
        return None, None, None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        raise ValueError(f"coordinates out of range: ({latitude}, {longitude})")
    
    return latitude, longitude, altitude


def _optional_float(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(f"'{key}' must be a number, got {type(value).__name__}")
    result = float(value)
    if not math.isfinite(result):
        raise ValueError(f"'{key}' is not finite")
    return result
