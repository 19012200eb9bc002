"""Shared fixtures: real media signatures, sidecars and a recording applicator."""

import json
import struct
import threading
import zlib
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from takeout_organizer.applicator import MetadataApplicator
from takeout_organizer.errors import MetadataApplyError
from takeout_organizer.models import Metadata


class MediaBytes:
    """Builders for minimal byte strings that filetype recognizes."""

    @staticmethod
    def jpeg(payload: bytes = b"") -> bytes:
        return b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01" + payload + b"\xff\xd9"

    @staticmethod
    def png(payload: bytes = b"") -> bytes:
        def chunk(kind: bytes, data: bytes) -> bytes:
            return (
                struct.pack(">I", len(data)) + kind + data
                + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)
            )
        ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
        return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"tEXt", b"c\x00" + payload) + chunk(b"IEND", b"")

    @staticmethod
    def gif(payload: bytes = b"") -> bytes:
        return b"GIF89a\x01\x00\x01\x00\x00\x00\x00" + payload + b";"

    @staticmethod
    def mp4(payload: bytes = b"") -> bytes:
        return b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isommp41" + payload

    @staticmethod
    def mov(payload: bytes = b"") -> bytes:
        return b"\x00\x00\x00\x14ftypqt  \x00\x00\x00\x00qt  " + payload

    @staticmethod
    def threegp(payload: bytes = b"") -> bytes:
        return b"\x00\x00\x00\x18ftyp3gp4\x00\x00\x02\x00isom3gp4" + payload

    @staticmethod
    def tiff(payload: bytes = b"") -> bytes:
        return b"II*\x00\x08\x00\x00\x00" + b"\x00" * 8 + payload


@pytest.fixture
def media() -> MediaBytes:
    return MediaBytes()


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[[str, bytes], Path]:
    """Create a file under tmp_path, making parent directories."""
    def _make(relative: str, content: bytes = b"") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path
    return _make


def sidecar_payload(
    timestamp: Optional[int] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    altitude: float = 0.0,
) -> dict:
    data: dict = {}
    if title is not None:
        data["title"] = title
    if description is not None:
        data["description"] = description
    if timestamp is not None:
        data["photoTakenTime"] = {"timestamp": str(timestamp), "formatted": ""}
    if latitude is not None and longitude is not None:
        data["geoData"] = {
            "latitude": latitude,
            "longitude": longitude,
            "altitude": altitude,
            "latitudeSpan": 0.0,
            "longitudeSpan": 0.0,
        }
    return data


@pytest.fixture
def make_sidecar(make_file) -> Callable[..., Path]:
    """Create a Takeout-style JSON sidecar."""
    def _make(relative: str, **fields) -> Path:
        return make_file(relative, json.dumps(sidecar_payload(**fields)).encode("utf-8"))
    return _make


class RecordingApplicator(MetadataApplicator):
    """Applicator that records calls instead of running exiftool.
    
    With fail=True every call that has something to write raises
    MetadataApplyError, like a broken exiftool would.
    """

    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Tuple[Path, Metadata, bytes]] = []
        self._lock = threading.Lock()

    def apply(self, path: Path, metadata: Optional[Metadata]) -> bool:
        with self._lock:
            self.calls.append((path, metadata, path.read_bytes()))
        if metadata is None or metadata.is_empty:
            return False
        if self.fail:
            raise MetadataApplyError("simulated exiftool failure", path=str(path))
        return True


@pytest.fixture
def recording_applicator() -> RecordingApplicator:
    return RecordingApplicator()


@pytest.fixture
def failing_applicator() -> RecordingApplicator:
    return RecordingApplicator(fail=True)
