"""Data model for the export organizer.

Candidates and sidecars are immutable records produced by the scanner.
A MatchedAsset wraps one candidate and is mutated as it moves through the
pipeline, always by a single worker at a time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from takeout_organizer.common import normalize_path


class CategoryKind(str, Enum):
    """Destination subtree of an asset."""

    GENERAL = "general"
    SHARED_ALBUM = "shared"
    ALBUM = "album"


# Lower wins when choosing which copy of duplicate content to keep
_CATEGORY_PRECEDENCE = {
    CategoryKind.ALBUM: 0,
    CategoryKind.SHARED_ALBUM: 1,
    CategoryKind.GENERAL: 2,
}


@dataclass(frozen=True)
class OutputCategory:
    """Tagged category: General, SharedAlbum or Album(name)."""

    kind: CategoryKind
    album_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind is CategoryKind.ALBUM and not self.album_name:
            raise ValueError("Album category requires an album name")
        if self.kind is not CategoryKind.ALBUM and self.album_name is not None:
            raise ValueError(f"{self.kind.value} category does not take an album name")

    @classmethod
    def general(cls) -> "OutputCategory":
        return cls(CategoryKind.GENERAL)

    @classmethod
    def shared_album(cls) -> "OutputCategory":
        return cls(CategoryKind.SHARED_ALBUM)

    @classmethod
    def album(cls, name: str) -> "OutputCategory":
        return cls(CategoryKind.ALBUM, name)

    @property
    def precedence(self) -> int:
        return _CATEGORY_PRECEDENCE[self.kind]

    def relative_dir(self) -> Path:
        """Destination directory relative to the output root."""
        if self.kind is CategoryKind.GENERAL:
            return Path("general")
        if self.kind is CategoryKind.SHARED_ALBUM:
            return Path("shared") / "shared"
        return Path("albums") / self.album_name

    def __str__(self) -> str:
        if self.kind is CategoryKind.ALBUM:
            return f"album:{self.album_name}"
        return self.kind.value


@dataclass(frozen=True)
class MediaFileCandidate:
    """A regular, non-sidecar file found by the scanner.
    
    Attributes:
        path: Absolute path to the file
        size: Size in bytes at scan time
        mtime: Modification time (epoch seconds) at scan time
        category: Category fixed from the file's folder position
    """
    path: Path
    size: int
    mtime: float
    category: OutputCategory

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Sidecar:
    """A JSON metadata file sitting next to media files."""
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Metadata:
    """Fixed metadata record extracted from a sidecar.
    
    Every field is optional; None means the sidecar did not provide it.
    """
    capture_time: Optional[datetime] = None
    creation_time: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    description: Optional[str] = None
    original_filename: Optional[str] = None

    @property
    def timestamp(self) -> Optional[datetime]:
        """Capture time, falling back to creation time."""
        return self.capture_time or self.creation_time

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def is_empty(self) -> bool:
        return (
            self.timestamp is None
            and not self.has_location
            and self.description is None
        )


@dataclass
class MatchedAsset:
    """A candidate paired with its sidecar, carried through the pipeline.
    
    Attributes:
        candidate: Scanned media file
        sidecar: Matched sidecar, if any
        metadata: Metadata parsed from the sidecar, if it parsed
        working_name: Output filename before collision resolution
            (extension already corrected once verified)
        canonical_extension: Extension implied by content, None if unknown
        fingerprint: SHA-256 hex digest of the content
        is_duplicate: True when another asset holds the same fingerprint
        duplicate_of: Source path of the canonical asset for duplicates
        output_path: Final destination path once reserved
        metadata_applied: Metadata was written into the output file
        metadata_apply_failed: Metadata writing was attempted and failed
        failed: Preparation failed; the asset is not copied
    """
    candidate: MediaFileCandidate
    sidecar: Optional[Sidecar] = None
    metadata: Optional[Metadata] = None
    working_name: str = ""
    canonical_extension: Optional[str] = None
    fingerprint: Optional[str] = None
    is_duplicate: bool = False
    duplicate_of: Optional[Path] = None
    output_path: Optional[Path] = None
    metadata_applied: bool = False
    metadata_apply_failed: bool = False
    failed: bool = False

    def __post_init__(self) -> None:
        if not self.working_name:
            self.working_name = self.candidate.name

    @property
    def source_path(self) -> Path:
        return self.candidate.path

    @property
    def category(self) -> OutputCategory:
        return self.candidate.category

    @property
    def report_key(self) -> str:
        """Normalized source path used to key report entries."""
        return normalize_path(self.candidate.path)

    @property
    def precedence_key(self) -> tuple[int, str]:
        """Total order used to pick the canonical copy of duplicate content."""
        return (self.category.precedence, self.report_key)


@dataclass
class DirectoryScope:
    """Media candidates and sidecars that share one directory."""
    directory: Path
    candidates: list[MediaFileCandidate] = field(default_factory=list)
    sidecars: list[Sidecar] = field(default_factory=list)
