"""Capture dates recovered from media filenames.

Used for media that has no usable sidecar. Camera and phone exports often
embed the capture day in the name ("IMG_20190704_181502.jpg",
"Screenshot_2021-03-09-10-11-12.png"); the day becomes a midnight UTC
capture time.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

# Counter suffixes such as "(1)"
_COUNTER_RE = re.compile(r'\(\d+\)')

# Camera prefixes and editor markers, joined to the date by "-" or "_"
_NOISE_RE = re.compile(
    r'[-_](?:edited|img|vid|jpeg|effects)|(?:edited|img|vid|jpeg|effects)[-_]',
    re.IGNORECASE,
)

_DATE_SEPARATORS = ('-', '_', ' ')

# Eight digits that could form a YYYYMMDD date
_MIN_DATE_LENGTH = 8
_MIN_YEAR = 1900


def _first_eight_digit_date(text: str) -> Optional[datetime]:
    match = re.search(r'\d{8}', text)
    if match is None:
        return None

    digits = match.group()
    year, month, day = int(digits[:4]), int(digits[4:6]), int(digits[6:8])
    if year < _MIN_YEAR:
        return None
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def date_from_filename(file_name: str) -> Optional[datetime]:
    """
    Find a YYYYMMDD or YYYY-MM-DD style date in a filename.

    Args:
        file_name: Media filename, with or without extension

    Returns:
        Midnight UTC on the embedded day, or None when the name holds no
        valid date

    Example:
        >>> date_from_filename("IMG_20190704_181502.jpg")
        datetime.datetime(2019, 7, 4, 0, 0, tzinfo=datetime.timezone.utc)
    """
    stem, dot, _ = file_name.rpartition('.')
    if not dot or not stem:
        stem = file_name

    text = _NOISE_RE.sub('', _COUNTER_RE.sub('', stem))
    if len(text) < _MIN_DATE_LENGTH:
        return None

    found = _first_eight_digit_date(text)
    if found is None:
        for separator in _DATE_SEPARATORS:
            found = _first_eight_digit_date(text.replace(separator, ''))
            if found is not None:
                break

    if found is not None:
        logger.debug(f"Date from filename: {{'name': {file_name!r}, 'date': {found.date().isoformat()!r}}}")
    return found
