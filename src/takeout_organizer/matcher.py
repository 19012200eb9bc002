"""Sidecar matching for media exports.

Pairs each media file with at most one JSON sidecar from the same
directory. Matching works on filenames only, so everything here is pure
and can be tested without touching the filesystem.

Export naming quirks handled:
- "IMG_1234.jpg"      <-> "IMG_1234.jpg.json"
- "IMG_1234.HEIC"     <-> "IMG_1234.json"                (stem only)
- "photo(1).jpg"      <-> "photo.jpg(1).json"            (counter moved)
- "photo.jpg"         <-> "photo.jpg.supplemental-metadata.json" (and truncations)
- "photo-edited.jpg"  <-> "photo.jpg.json"               (edited marker)
- "photo.jpg"         <-> "photo.j.json"                 (truncated extension)
- "very_long_name...jpg" <-> "very_long_na.json"         (truncated name)

Scoring rule:
    Tier 1 (exact) pairs are assigned before tier 2 (normalized) pairs.
    Within a tier, pairs are ranked by
      1. whole-name matches before stem-only matches (tier 1 only),
      2. descending score, the length of the case-insensitive common
         prefix of the sidecar key and the media filename,
      3. ascending sidecar filename,
      4. ascending media filename,
    and assigned greedily so every media file and every sidecar is used
    at most once.
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

SIDECAR_SUFFIX = '.json'
SUPPLEMENTAL_TAIL = 'supplemental-metadata'
COUNTER_RE = re.compile(r'\((\d+)\)$')

# Localized markers appended to edited copies
EDITED_MARKERS = ('-edited', '-bearbeitet', '-modifié', '-redigert', '-bewerkt')

DEFAULT_MIN_PREFIX_LENGTH = 16


class MatchTier(str, Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"


@dataclass(frozen=True)
class SidecarMatch:
    """Chosen sidecar for one media file."""
    sidecar_name: str
    tier: MatchTier
    score: int


@dataclass(frozen=True)
class ParsedSidecarName:
    """Sidecar filename components.
    
    Attributes:
        name: Sidecar filename ("photo.jpg.supplemental-metadata(1).json")
        key: Name the sidecar refers to ("photo.jpg")
        counter: Duplicate counter digits ("1") or None
    """
    name: str
    key: str
    counter: Optional[str]


@dataclass(frozen=True)
class ParsedMediaName:
    """Media filename components.
    
    Attributes:
        name: Media filename ("photo(1).jpg")
        raw_stem: Stem as found on disk ("photo(1)")
        stem: Stem without duplicate counter ("photo")
        extension: Extension including the dot (".jpg")
        counter: Duplicate counter digits ("1") or None
    """
    name: str
    raw_stem: str
    stem: str
    extension: str
    counter: Optional[str]

    @property
    def base_name(self) -> str:
        """Filename without the duplicate counter ("photo.jpg")."""
        return self.stem + self.extension

    @property
    def unedited_stem(self) -> str:
        return strip_edited_marker(self.stem)

    @property
    def unedited_name(self) -> str:
        return self.unedited_stem + self.extension


def strip_edited_marker(stem: str) -> str:
    """Remove a trailing "-edited" style marker (case-insensitive)."""
    lowered = stem.lower()
    for marker in EDITED_MARKERS:
        if lowered.endswith(marker) and len(stem) > len(marker):
            return stem[:-len(marker)]
    return stem


def _strip_supplemental_tail(core: str) -> str:
    head, dot, tail = core.rpartition('.')
    if dot and head and tail and SUPPLEMENTAL_TAIL.startswith(tail.lower()):
        return head
    return core


def parse_sidecar_name(name: str) -> ParsedSidecarName:
    """Split a sidecar filename into the media name it refers to and its counter."""
    core = name[:-len(SIDECAR_SUFFIX)] if name.lower().endswith(SIDECAR_SUFFIX) else name
    
    counter = None
    match = COUNTER_RE.search(core)
    if match:
        counter = match.group(1)
        core = core[:match.start()]
    
    core = _strip_supplemental_tail(core)
    # "photo..json" and "photo.jpg..json" style leftovers
    core = core.rstrip('.')
    
    return ParsedSidecarName(name=name, key=core, counter=counter)


def parse_media_name(name: str) -> ParsedMediaName:
    """Split a media filename into stem, extension and duplicate counter."""
    raw_stem, extension = os.path.splitext(name)
    
    stem = raw_stem
    counter = None
    match = COUNTER_RE.search(raw_stem)
    if match and match.start() > 0:
        counter = match.group(1)
        stem = raw_stem[:match.start()]
    
    return ParsedMediaName(
        name=name,
        raw_stem=raw_stem,
        stem=stem,
        extension=extension,
        counter=counter,
    )


def common_prefix_length(a: str, b: str) -> int:
    """Length of the case-insensitive common prefix of two strings."""
    length = 0
    for x, y in zip(a.casefold(), b.casefold()):
        if x != y:
            break
        length += 1
    return length


def _exact_rank(media: ParsedMediaName, sidecar: ParsedSidecarName) -> Optional[int]:
    """0 for a whole-name match, 1 for a stem-only match, None otherwise."""
    if sidecar.counter == media.counter:
        if sidecar.key == media.base_name:
            return 0
        if sidecar.key == media.stem:
            return 1
    if sidecar.counter is None:
        # Counter is part of the real filename ("Screenshot (1).png")
        if sidecar.key == media.name:
            return 0
        if sidecar.key == media.raw_stem:
            return 1
    return None


def _is_normalized_match(
    media: ParsedMediaName,
    sidecar: ParsedSidecarName,
    min_prefix_length: int,
) -> bool:
    if sidecar.counter != media.counter:
        return False
    
    key = sidecar.key.casefold()
    stem = media.unedited_stem.casefold()
    name = media.unedited_name.casefold()
    
    if not key:
        return False
    
    # Edited copy sharing the original's sidecar
    if key in (name, stem):
        return True
    
    # Truncated extension: "photo.j" for "photo.jpg"
    if key.startswith(stem + '.') and name.startswith(key):
        return True
    
    # Truncated name in either direction
    if name.startswith(key) or key.startswith(name):
        return min(len(key), len(name)) >= min_prefix_length
    
    return False


def _assign(
    pairs: List[Tuple[tuple, ParsedMediaName, ParsedSidecarName, int]],
    tier: MatchTier,
    result: Dict[str, Optional[SidecarMatch]],
    used_sidecars: set,
) -> None:
    for _, media, sidecar, score in sorted(pairs, key=lambda p: p[0]):
        if result[media.name] is not None or sidecar.name in used_sidecars:
            continue
        result[media.name] = SidecarMatch(sidecar_name=sidecar.name, tier=tier, score=score)
        used_sidecars.add(sidecar.name)


def match_directory(
    media_names: Iterable[str],
    sidecar_names: Iterable[str],
    min_prefix_length: int = DEFAULT_MIN_PREFIX_LENGTH,
) -> Dict[str, Optional[SidecarMatch]]:
    """Match media files to sidecars that live in the same directory.
    
    Args:
        media_names: Media filenames in the directory
        sidecar_names: Sidecar filenames in the directory
        min_prefix_length: Shortest shared prefix accepted for truncated names
        
    Returns:
        Mapping of every media filename to its SidecarMatch, or None when
        no sidecar qualifies
    """
    media = [parse_media_name(n) for n in sorted(set(media_names))]
    sidecars = [parse_sidecar_name(n) for n in sorted(set(sidecar_names))]
    
    result: Dict[str, Optional[SidecarMatch]] = {m.name: None for m in media}
    used_sidecars: set = set()
    
    # Tier 1 via index lookups; directories can hold thousands of files
    by_key: Dict[str, List[ParsedSidecarName]] = {}
    for sidecar in sidecars:
        by_key.setdefault(sidecar.key, []).append(sidecar)
    
    exact_pairs = []
    for m in media:
        seen = set()
        for key in (m.base_name, m.stem, m.name, m.raw_stem):
            for sidecar in by_key.get(key, ()):
                if sidecar.name in seen:
                    continue
                seen.add(sidecar.name)
                rank = _exact_rank(m, sidecar)
                if rank is None:
                    continue
                score = common_prefix_length(sidecar.key, m.name)
                exact_pairs.append(((rank, -score, sidecar.name, m.name), m, sidecar, score))
    
    _assign(exact_pairs, MatchTier.EXACT, result, used_sidecars)
    
    # Tier 2 only over what is left
    remaining_media = [m for m in media if result[m.name] is None]
    remaining_sidecars = [s for s in sidecars if s.name not in used_sidecars]
    
    normalized_pairs = []
    for m in remaining_media:
        for sidecar in remaining_sidecars:
            if _is_normalized_match(m, sidecar, min_prefix_length):
                score = common_prefix_length(sidecar.key, m.name)
                normalized_pairs.append(((-score, sidecar.name, m.name), m, sidecar, score))
    
    _assign(normalized_pairs, MatchTier.NORMALIZED, result, used_sidecars)
    
    return result


def select_sidecar(
    media_name: str,
    sidecar_names: Iterable[str],
    min_prefix_length: int = DEFAULT_MIN_PREFIX_LENGTH,
) -> Optional[SidecarMatch]:
    """Pick the best sidecar for a single media file.
    
    Example:
        >>> select_sidecar("IMG_0001.jpg", ["IMG_0001.jpg.json", "IMG_0002.jpg.json"]).sidecar_name
        'IMG_0001.jpg.json'
    """
    return match_directory([media_name], sidecar_names, min_prefix_length)[media_name]
