"""Run report: append-only record of warnings, errors and notable events."""

import json
import logging
import threading
from collections import Counter
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from takeout_organizer.common import normalize_path

logger = logging.getLogger(__name__)


class ReportKind(str, Enum):
    """Kinds of report entries."""

    SCAN_ERROR = "scan_error"
    SIDECAR_MATCH_WARNING = "sidecar_match_warning"
    METADATA_PARSE_WARNING = "metadata_parse_warning"
    EXTENSION_UNKNOWN_WARNING = "extension_unknown_warning"
    EXTENSION_CORRECTED = "extension_corrected"
    DUPLICATE_SKIPPED = "duplicate_skipped"
    METADATA_APPLY_FAILED = "metadata_apply_failed"
    COLLISION_RESOLVED = "collision_resolved"
    ASSET_ERROR = "asset_error"
    FILESYSTEM_FATAL = "filesystem_fatal"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


SEVERITY = {
    ReportKind.SCAN_ERROR: Severity.ERROR,
    ReportKind.SIDECAR_MATCH_WARNING: Severity.WARNING,
    ReportKind.METADATA_PARSE_WARNING: Severity.WARNING,
    ReportKind.EXTENSION_UNKNOWN_WARNING: Severity.WARNING,
    ReportKind.EXTENSION_CORRECTED: Severity.INFO,
    ReportKind.DUPLICATE_SKIPPED: Severity.INFO,
    ReportKind.METADATA_APPLY_FAILED: Severity.WARNING,
    ReportKind.COLLISION_RESOLVED: Severity.INFO,
    ReportKind.ASSET_ERROR: Severity.ERROR,
    ReportKind.FILESYSTEM_FATAL: Severity.ERROR,
}

_LOG_LEVELS = {
    Severity.INFO: logging.DEBUG,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class ReportEntry:
    """One report record, keyed by the normalized source path."""
    kind: ReportKind
    path: str
    message: str
    related_path: Optional[str] = None

    @property
    def severity(self) -> Severity:
        return SEVERITY[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['kind'] = self.kind.value
        data['severity'] = self.severity.value
        return data


class RunReport:
    """Thread-safe, append-only collection of report entries.
    
    Workers only ever append; readers get snapshots, so the report can be
    shared freely across threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: List[ReportEntry] = []

    def add(
        self,
        kind: ReportKind,
        path: Path | str,
        message: str,
        related_path: Path | str | None = None,
    ) -> ReportEntry:
        entry = ReportEntry(
            kind=kind,
            path=normalize_path(path),
            message=message,
            related_path=normalize_path(related_path) if related_path is not None else None,
        )
        with self._lock:
            self._entries.append(entry)

        logger.log(
            _LOG_LEVELS[entry.severity],
            f"{kind.value}: {{'path': {entry.path!r}, 'message': {message!r}}}"
        )
        return entry

    def entries(self, kind: Optional[ReportKind] = None) -> List[ReportEntry]:
        """Snapshot of entries, optionally filtered by kind."""
        with self._lock:
            snapshot = list(self._entries)
        if kind is None:
            return snapshot
        return [e for e in snapshot if e.kind is kind]

    def count(self, kind: ReportKind) -> int:
        return len(self.entries(kind))

    def counts(self) -> Dict[str, int]:
        counter = Counter(e.kind.value for e in self.entries())
        return {kind.value: counter.get(kind.value, 0) for kind in ReportKind}

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self.entries() if e.severity is Severity.WARNING)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self.entries() if e.severity is Severity.ERROR)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'counts': self.counts(),
            'warnings': self.warning_count,
            'errors': self.error_count,
            'entries': [e.to_dict() for e in self.entries()],
        }

    def write_json(self, path: Path, summary: Optional["RunSummary"] = None) -> None:
        """Write the report (and optional summary) as JSON."""
        data = self.to_dict()
        if summary is not None:
            data['summary'] = summary.to_dict()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        logger.info(f"Report written: {{'path': {str(path)!r}, 'entries': {len(data['entries'])}}}")


@dataclass
class RunSummary:
    """Totals returned by the orchestrator at the end of a run."""
    files_discovered: int = 0
    sidecars_discovered: int = 0
    files_copied: int = 0
    duplicates_skipped: int = 0
    extensions_corrected: int = 0
    collisions_resolved: int = 0
    metadata_applied: int = 0
    metadata_failed: int = 0
    warnings: int = 0
    errors: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
