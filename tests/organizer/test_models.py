"""Tests for the organizer data model."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from takeout_organizer.models import (
    CategoryKind,
    MatchedAsset,
    MediaFileCandidate,
    Metadata,
    OutputCategory,
)


def _candidate(path: str, category: OutputCategory) -> MediaFileCandidate:
    return MediaFileCandidate(path=Path(path), size=1, mtime=0.0, category=category)


class TestOutputCategory:
    
    def test_relative_dirs(self):
        assert OutputCategory.general().relative_dir() == Path("general")
        assert OutputCategory.shared_album().relative_dir() == Path("shared") / "shared"
        assert OutputCategory.album("Trip").relative_dir() == Path("albums") / "Trip"
    
    def test_album_requires_name(self):
        with pytest.raises(ValueError):
            OutputCategory(CategoryKind.ALBUM)
    
    def test_general_rejects_name(self):
        with pytest.raises(ValueError):
            OutputCategory(CategoryKind.GENERAL, "x")
    
    def test_precedence_prefers_albums(self):
        assert (
            OutputCategory.album("A").precedence
            < OutputCategory.shared_album().precedence
            < OutputCategory.general().precedence
        )
    
    def test_equality_and_str(self):
        assert OutputCategory.album("A") == OutputCategory.album("A")
        assert str(OutputCategory.album("A")) == "album:A"
        assert str(OutputCategory.general()) == "general"


class TestMetadata:
    
    def test_timestamp_falls_back_to_creation_time(self):
        created = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert Metadata(creation_time=created).timestamp == created
    
    def test_capture_time_wins(self):
        taken = datetime(2019, 1, 1, tzinfo=timezone.utc)
        created = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert Metadata(capture_time=taken, creation_time=created).timestamp == taken
    
    def test_is_empty(self):
        assert Metadata().is_empty
        assert Metadata(original_filename="a.jpg").is_empty
        assert not Metadata(description="x").is_empty
        assert not Metadata(latitude=1.0, longitude=2.0).is_empty


class TestMatchedAsset:
    
    def test_working_name_defaults_to_candidate_name(self):
        asset = MatchedAsset(candidate=_candidate("/in/general/a.jpg", OutputCategory.general()))
        assert asset.working_name == "a.jpg"
    
    def test_precedence_key_orders_album_first(self):
        general = MatchedAsset(candidate=_candidate("/in/a/x.jpg", OutputCategory.general()))
        album = MatchedAsset(candidate=_candidate("/in/z/x.jpg", OutputCategory.album("Z")))
        
        assert album.precedence_key < general.precedence_key
