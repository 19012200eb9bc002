"""Tests for the archive scanner."""

import os
import sys
from pathlib import Path

import pytest

from takeout_organizer.errors import FilesystemFatalError
from takeout_organizer.models import OutputCategory
from takeout_organizer.report import ReportKind, RunReport
from takeout_organizer.scanner import ArchiveScanner, categorize, resolve_scan_root


class TestCategorize:
    
    @pytest.mark.parametrize("relative, expected", [
        ("general/a.jpg", OutputCategory.general()),
        ("Archive/a.jpg", OutputCategory.general()),
        ("Photos from 2019/a.jpg", OutputCategory.general()),
        ("shared/a.jpg", OutputCategory.shared_album()),
        ("Untitled/a.jpg", OutputCategory.shared_album()),
        ("Untitled(3)/a.jpg", OutputCategory.shared_album()),
        ("Untitled (12)/a.jpg", OutputCategory.shared_album()),
        ("albums/Trip/a.jpg", OutputCategory.album("Trip")),
        ("albums/Trip/day1/a.jpg", OutputCategory.album("Trip")),
        ("albums/a.jpg", OutputCategory.general()),
        ("Summer 2020/a.jpg", OutputCategory.album("Summer 2020")),
        ("Photos from the beach/a.jpg", OutputCategory.album("Photos from the beach")),
    ])
    def test_categories(self, relative, expected):
        assert categorize(Path(relative)) == expected


class TestResolveScanRoot:
    
    def test_takeout_layout(self, tmp_path):
        root = tmp_path / "Takeout" / "Google Photos"
        root.mkdir(parents=True)
        assert resolve_scan_root(tmp_path) == root
    
    def test_bare_google_photos(self, tmp_path):
        root = tmp_path / "Google Photos"
        root.mkdir()
        assert resolve_scan_root(tmp_path) == root
    
    def test_plain_layout(self, tmp_path):
        assert resolve_scan_root(tmp_path) == tmp_path


class TestArchiveScanner:
    
    def test_classifies_media_and_sidecars(self, make_file, tmp_path):
        make_file("in/general/IMG_0001.jpg", b"a")
        make_file("in/general/IMG_0001.jpg.json", b"{}")
        make_file("in/albums/A/photo.jpg", b"b")
        make_file("in/shared/clip.mp4", b"c")
        
        report = RunReport()
        scopes = list(ArchiveScanner(tmp_path / "in", report).scopes())
        
        by_dir = {s.directory.relative_to(tmp_path / "in").as_posix(): s for s in scopes}
        assert set(by_dir) == {"albums/A", "general", "shared"}
        assert [c.name for c in by_dir["general"].candidates] == ["IMG_0001.jpg"]
        assert [s.name for s in by_dir["general"].sidecars] == ["IMG_0001.jpg.json"]
        assert by_dir["albums/A"].candidates[0].category == OutputCategory.album("A")
        assert by_dir["shared"].candidates[0].category == OutputCategory.shared_album()
        assert report.entries() == []
    
    def test_candidate_records_size_and_mtime(self, make_file, tmp_path):
        path = make_file("in/general/a.jpg", b"12345")
        os.utime(path, (1_600_000_000, 1_600_000_000))
        
        candidate = next(iter(ArchiveScanner(tmp_path / "in", RunReport())))
        assert candidate.size == 5
        assert candidate.mtime == 1_600_000_000
        assert candidate.path == path
    
    def test_skips_root_files_and_bookkeeping(self, make_file, tmp_path):
        make_file("in/archive_browser.html", b"<html>")
        make_file("in/loose.jpg", b"x")
        make_file("in/albums/A/metadata.json", b"{}")
        make_file("in/albums/A/Thumbs.db", b"x")
        make_file("in/albums/A/edit.tmp", b"x")
        make_file("in/albums/A/photo.jpg", b"x")
        
        names = [c.name for c in ArchiveScanner(tmp_path / "in", RunReport())]
        assert names == ["photo.jpg"]
    
    def test_sorted_and_restartable(self, make_file, tmp_path):
        for name in ["c.jpg", "a.jpg", "b.jpg"]:
            make_file(f"in/general/{name}", b"x")
        make_file("in/albums/Z/z.jpg", b"x")
        make_file("in/albums/B/b.jpg", b"x")
        
        scanner = ArchiveScanner(tmp_path / "in", RunReport())
        first = [c.path for c in scanner]
        second = [c.path for c in scanner]
        
        assert first == second
        rel = [p.relative_to(tmp_path / "in").as_posix() for p in first]
        assert rel == [
            "albums/B/b.jpg",
            "albums/Z/z.jpg",
            "general/a.jpg",
            "general/b.jpg",
            "general/c.jpg",
        ]
    
    def test_takeout_root_is_detected(self, make_file, tmp_path):
        make_file("in/Takeout/Google Photos/Photos from 2020/a.jpg", b"x")
        make_file("in/Takeout/Google Photos/Trip/b.jpg", b"x")
        
        candidates = list(ArchiveScanner(tmp_path / "in", RunReport()))
        assert [c.category for c in candidates] == [
            OutputCategory.general(),
            OutputCategory.album("Trip"),
        ]
    
    def test_missing_root_is_fatal(self, tmp_path):
        scanner = ArchiveScanner(tmp_path / "does-not-exist", RunReport())
        with pytest.raises(FilesystemFatalError):
            list(scanner.scopes())
    
    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_unreadable_subtree_is_reported_and_skipped(self, make_file, tmp_path):
        make_file("in/albums/Locked/a.jpg", b"x")
        make_file("in/general/b.jpg", b"x")
        locked = tmp_path / "in" / "albums" / "Locked"
        locked.chmod(0)
        try:
            report = RunReport()
            names = [c.name for c in ArchiveScanner(tmp_path / "in", report)]
        finally:
            locked.chmod(0o755)
        
        assert names == ["b.jpg"]
        errors = report.entries(ReportKind.SCAN_ERROR)
        assert len(errors) == 1
        assert errors[0].path.endswith("albums/Locked")
    
    def test_unreadable_subtree_via_mock(self, make_file, tmp_path, monkeypatch):
        make_file("in/albums/Broken/a.jpg", b"x")
        make_file("in/general/b.jpg", b"x")
        
        import takeout_organizer.scanner as scanner_module
        real_list_dir = scanner_module._list_dir
        
        def flaky_list_dir(directory):
            if directory.name == "Broken":
                raise PermissionError(13, "Permission denied", str(directory))
            return real_list_dir(directory)
        
        monkeypatch.setattr(scanner_module, "_list_dir", flaky_list_dir)
        
        report = RunReport()
        names = [c.name for c in ArchiveScanner(tmp_path / "in", report)]
        
        assert names == ["b.jpg"]
        assert report.count(ReportKind.SCAN_ERROR) == 1
