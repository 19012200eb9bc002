"""Tests for the run report."""

import errno
import json
import threading
from pathlib import Path

from takeout_organizer.errors import (
    FilesystemFatalError,
    MetadataApplyError,
    MetadataParseError,
    classify_error,
    is_fatal_write_error,
)
from takeout_organizer.report import ReportKind, RunReport, RunSummary, Severity


class TestRunReport:
    
    def test_add_normalizes_paths(self):
        report = RunReport()
        entry = report.add(ReportKind.SIDECAR_MATCH_WARNING, r"in\general\a.jpg", "no sidecar")
        
        assert entry.path == "in/general/a.jpg"
        assert report.entries() == [entry]
    
    def test_counts_and_severity(self):
        report = RunReport()
        report.add(ReportKind.SIDECAR_MATCH_WARNING, "a", "w")
        report.add(ReportKind.DUPLICATE_SKIPPED, "b", "d", related_path="a")
        report.add(ReportKind.ASSET_ERROR, "c", "e")
        
        counts = report.counts()
        assert counts["sidecar_match_warning"] == 1
        assert counts["duplicate_skipped"] == 1
        assert counts["collision_resolved"] == 0
        assert report.warning_count == 1
        assert report.error_count == 1
        assert report.entries(ReportKind.DUPLICATE_SKIPPED)[0].related_path == "a"
        assert report.entries(ReportKind.DUPLICATE_SKIPPED)[0].severity is Severity.INFO
    
    def test_concurrent_appends(self):
        report = RunReport()
        
        def worker(n):
            for i in range(100):
                report.add(ReportKind.COLLISION_RESOLVED, f"{n}/{i}", "x")
        
        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        
        assert report.count(ReportKind.COLLISION_RESOLVED) == 800
    
    def test_write_json(self, tmp_path):
        report = RunReport()
        report.add(ReportKind.EXTENSION_UNKNOWN_WARNING, "x.jpg", "unknown")
        target = tmp_path / "reports" / "run.json"
        
        report.write_json(target, RunSummary(files_discovered=1))
        
        data = json.loads(target.read_text(encoding="utf-8"))
        assert data["warnings"] == 1
        assert data["summary"]["files_discovered"] == 1
        assert data["entries"][0]["kind"] == "extension_unknown_warning"
        assert data["entries"][0]["severity"] == "warning"


class TestErrors:
    
    def test_context_is_kept(self):
        error = MetadataParseError("unreadable", path="/in/x.json")
        assert error.context == {"path": "/in/x.json"}
        assert str(error) == "unreadable"
    
    def test_classify_error(self):
        assert classify_error(FilesystemFatalError("x")) == "fatal"
        assert classify_error(MetadataParseError("x")) == "parse"
        assert classify_error(MetadataApplyError("x")) == "apply"
        assert classify_error(PermissionError("x")) == "permission"
        assert classify_error(FileNotFoundError("x")) == "io"
        assert classify_error(ValueError("x")) == "parse"
        assert classify_error(RuntimeError("x")) == "unknown"
    
    def test_fatal_write_errors(self):
        assert is_fatal_write_error(OSError(errno.ENOSPC, "No space left on device"))
        assert is_fatal_write_error(OSError(errno.EROFS, "Read-only file system"))
        assert is_fatal_write_error(PermissionError(errno.EACCES, "Permission denied"))
        assert not is_fatal_write_error(OSError(errno.ENOENT, "No such file"))
        assert not is_fatal_write_error(ValueError("x"))
