"""Reorganize Google Photos export bundles into an upload-ready tree.

Pipeline: scan -> match sidecars -> parse metadata -> verify extensions ->
deduplicate -> resolve name collisions -> copy and embed metadata.
"""

from .config import OrganizerConfig, OrganizerSettings
from .errors import (
    FilesystemFatalError,
    MetadataApplyError,
    MetadataParseError,
    OrganizerError,
)
from .models import MatchedAsset, MediaFileCandidate, Metadata, OutputCategory, Sidecar
from .organizer import PipelineOrchestrator
from .report import ReportKind, RunReport, RunSummary

__version__ = "0.1.0"

__all__ = [
    "OrganizerConfig",
    "OrganizerSettings",
    "OrganizerError",
    "FilesystemFatalError",
    "MetadataParseError",
    "MetadataApplyError",
    "MatchedAsset",
    "MediaFileCandidate",
    "Metadata",
    "OutputCategory",
    "Sidecar",
    "PipelineOrchestrator",
    "ReportKind",
    "RunReport",
    "RunSummary",
]
