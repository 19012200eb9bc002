"""Pipeline orchestrator.

Drives an export bundle through three phases:

1. Prepare (parallel, streamed from the scanner): parse the matched
   sidecar (or take a date from the filename when there is none), verify the extension against the content signature, hash the
   content and register the fingerprint.
2. Plan (coordinating thread, deterministic order): mark duplicates and
   reserve output filenames, sorted by destination directory and then by
   source path.
3. Deliver (parallel): copy each canonical asset to a hidden temporary
   file in its destination directory, write metadata into the copy, set
   file times and atomically move it into place. When a canonical copy
   fails, the next copy of the same content is delivered instead.

Duplicate and name decisions are taken only after every fingerprint is
known and in a fixed order, so the output does not depend on the number
of workers or on thread scheduling.
"""

import logging
import os
import shutil
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .applicator import (
    ExiftoolApplicator,
    MetadataApplicator,
    NullApplicator,
    set_file_times,
)
from .collisions import CollisionTable
from .common import LogContext
from .config import OrganizerSettings
from .dedup import FingerprintTable, compute_fingerprint
from .errors import (
    FilesystemFatalError,
    MetadataApplyError,
    MetadataParseError,
    is_fatal_write_error,
)
from .filename_dates import date_from_filename
from .matcher import match_directory
from .models import DirectoryScope, MatchedAsset, Metadata
from .parallel import WorkerPool, WorkResult
from .progress import ProgressTracker
from .report import ReportKind, RunReport, RunSummary
from .scanner import ArchiveScanner
from .sidecar import read_sidecar
from .signatures import ExtensionStatus, read_signature, verify_extension
from .tool_checker import log_tool_status

logger = logging.getLogger(__name__)

TEMP_PREFIX = ".tmp-"


def build_applicator(settings: OrganizerSettings) -> MetadataApplicator:
    """Create the metadata applicator the settings ask for.

    A missing exiftool is logged once here; each asset with metadata then
    records its own metadata_apply_failed entry.
    """
    available = log_tool_status(settings.exiftool_path, enabled=settings.apply_metadata)
    if not settings.apply_metadata:
        return NullApplicator()
    if not available:
        logger.warning(
            "Metadata will not be embedded: {'reason': 'exiftool unavailable'}"
        )
    return ExiftoolApplicator(
        exiftool_path=settings.exiftool_path,
        timeout=settings.exiftool_timeout,
    )


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root)
        return True
    except ValueError:
        return False


def _placement_key(asset: MatchedAsset) -> tuple:
    """Destination directory, then normalized source path."""
    return (asset.category.relative_dir().as_posix(), asset.report_key)


class PipelineOrchestrator:
    """Organizes one export bundle into the output tree.

    Shared state (fingerprint table, collision table, run report) is owned
    by the orchestrator and handed to workers explicitly; each MatchedAsset
    is touched by one worker at a time.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        settings: Optional[OrganizerSettings] = None,
        applicator: Optional[MetadataApplicator] = None,
        report: Optional[RunReport] = None,
    ):
        """Initialize the orchestrator.

        Args:
            input_path: Root of the export bundle
            output_path: Root of the output tree (created if missing)
            settings: Pipeline settings (defaults if omitted)
            applicator: Metadata writer (built from settings if omitted)
            report: Report to append to (a new one if omitted)
        """
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.settings = settings or OrganizerSettings()
        self.applicator = applicator or build_applicator(self.settings)
        self.report = report or RunReport()

        self.fingerprints = FingerprintTable()
        self.collisions = CollisionTable()
        self.shutdown_event = threading.Event()

        self.run_id = uuid.uuid4().hex[:12]
        self.summary = RunSummary()
        self._prepared: List[MatchedAsset] = []
        self._promoted: List[MatchedAsset] = []
        self._progress: Optional[ProgressTracker] = None

        logger.info(
            f"Initialized PipelineOrchestrator: {{'input': {str(self.input_path)!r}, "
            f"'output': {str(self.output_path)!r}, 'threads': {self.settings.worker_threads}, "
            f"'applicator': {self.applicator.name!r}, 'run_id': {self.run_id!r}}}"
        )

    def run(self) -> RunSummary:
        """Run the whole pipeline.

        Returns:
            RunSummary with totals for the run

        Raises:
            FilesystemFatalError: If the output tree cannot be written or the
                input root cannot be read. Files already delivered stay.
        """
        start_time = time.time()
        with LogContext(run_id=self.run_id):
            logger.info(f"Starting organize run: {{'input': {str(self.input_path)!r}}}")
            return self._run_phases(start_time)

    def _run_phases(self, start_time: float) -> RunSummary:
        try:
            self._prepare_output_root()
            with LogContext(phase="prepare"):
                self._prepare_phase()
            with LogContext(phase="plan"):
                deliveries = self._plan_phase()
            with LogContext(phase="deliver"):
                self._deliver_phase(deliveries)
        except FilesystemFatalError as e:
            self.report.add(ReportKind.FILESYSTEM_FATAL, e.context.get('path', self.output_path), str(e))
            self._finalize(start_time)
            logger.error(f"Organize run aborted: {{'error': {str(e)!r}}}")
            raise

        self._finalize(start_time)
        logger.info(
            f"Organize run complete: {{'copied': {self.summary.files_copied}, "
            f"'duplicates': {self.summary.duplicates_skipped}, "
            f"'warnings': {self.summary.warnings}, 'errors': {self.summary.errors}, "
            f"'duration_seconds': {self.summary.duration_seconds:.2f}}}"
        )
        return self.summary

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _prepare_output_root(self) -> None:
        try:
            self.output_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemFatalError(
                f"Cannot create output directory: {e}",
                path=str(self.output_path),
            ) from e

        if not os.access(self.output_path, os.W_OK):
            raise FilesystemFatalError(
                "Output directory is not writable",
                path=str(self.output_path),
            )

    # ------------------------------------------------------------------
    # Phase 1: prepare
    # ------------------------------------------------------------------

    def _prepare_phase(self) -> None:
        scanner = ArchiveScanner(self.input_path, self.report)
        output_root = self.output_path.resolve()

        pool = WorkerPool(
            task=self._prepare_asset,
            on_result=self._collect_prepared,
            worker_threads=self.settings.worker_threads,
            queue_maxsize=self.settings.queue_maxsize,
            shutdown_event=self.shutdown_event,
            name="Prepare",
        )

        with pool:
            for scope in scanner.scopes():
                if _is_within(scope.directory, output_root):
                    logger.debug(f"Skipping output directory: {{'path': {str(scope.directory)!r}}}")
                    continue

                self.summary.sidecars_discovered += len(scope.sidecars)
                self.summary.files_discovered += len(scope.candidates)

                for asset in self.match_scope(scope):
                    if not pool.submit(asset):
                        break
                if self.shutdown_event.is_set():
                    break
            pool.finish()
        pool.raise_if_fatal()

        logger.info(
            f"Prepare phase complete: {{'assets': {len(self._prepared)}, "
            f"'unique_contents': {len(self.fingerprints)}}}"
        )

    def match_scope(self, scope: DirectoryScope) -> List[MatchedAsset]:
        """Pair every candidate in a directory with at most one sidecar.

        Unmatched media get a sidecar_match_warning; unmatched sidecars are
        only logged.
        """
        sidecars = {s.name: s for s in scope.sidecars}
        matches = match_directory(
            [c.name for c in scope.candidates],
            sidecars.keys(),
            self.settings.min_prefix_length,
        )

        assets = []
        used = set()
        for candidate in sorted(scope.candidates, key=lambda c: c.name):
            match = matches.get(candidate.name)
            asset = MatchedAsset(candidate=candidate)
            if match is None:
                self.report.add(
                    ReportKind.SIDECAR_MATCH_WARNING,
                    candidate.path,
                    "No matching sidecar",
                )
            else:
                asset.sidecar = sidecars[match.sidecar_name]
                used.add(match.sidecar_name)
            assets.append(asset)

        unmatched = sorted(set(sidecars) - used)
        for name in unmatched:
            logger.debug(f"Unmatched sidecar: {{'path': {str(scope.directory / name)!r}}}")
        if unmatched:
            logger.info(
                f"Unmatched sidecars: {{'directory': {str(scope.directory)!r}, 'count': {len(unmatched)}}}"
            )

        return assets

    def _prepare_asset(self, asset: MatchedAsset) -> MatchedAsset:
        """Worker task: metadata, extension check and fingerprint."""
        self._read_metadata(asset)

        header = read_signature(asset.source_path, self.settings.signature_prefix_size)
        verdict = verify_extension(asset.working_name, header)

        if verdict.status is ExtensionStatus.UNKNOWN:
            self.report.add(
                ReportKind.EXTENSION_UNKNOWN_WARNING,
                asset.source_path,
                f"Unrecognized content signature; keeping {asset.working_name!r}",
            )
        elif verdict.status is ExtensionStatus.CORRECTED:
            self.report.add(
                ReportKind.EXTENSION_CORRECTED,
                asset.source_path,
                f"Renamed {asset.working_name!r} to {verdict.name!r} ({verdict.mime_type})",
            )
            asset.working_name = verdict.name
        asset.canonical_extension = verdict.canonical_extension

        asset.fingerprint = compute_fingerprint(asset.source_path, self.settings.hash_chunk_size)
        self.fingerprints.register(asset.fingerprint, asset)
        return asset

    def _read_metadata(self, asset: MatchedAsset) -> None:
        """Attach sidecar metadata, or a date taken from the filename.

        Nothing raised here stops the asset itself from being delivered.
        """
        if asset.sidecar is not None:
            warnings: List[str] = []
            try:
                asset.metadata = read_sidecar(asset.sidecar.path, warnings)
            except MetadataParseError as e:
                self.report.add(
                    ReportKind.METADATA_PARSE_WARNING,
                    asset.source_path,
                    str(e),
                    related_path=asset.sidecar.path,
                )
            except Exception as e:
                logger.debug(f"Sidecar parser failure: {{'path': {str(asset.sidecar.path)!r}}}", exc_info=True)
                self.report.add(
                    ReportKind.METADATA_PARSE_WARNING,
                    asset.source_path,
                    f"Sidecar could not be parsed ({type(e).__name__}): {e}",
                    related_path=asset.sidecar.path,
                )
            for warning in warnings:
                self.report.add(
                    ReportKind.METADATA_PARSE_WARNING,
                    asset.source_path,
                    warning,
                    related_path=asset.sidecar.path,
                )

        if asset.metadata is None and self.settings.dates_from_filenames:
            found = date_from_filename(asset.candidate.name)
            if found is not None:
                asset.metadata = Metadata(capture_time=found)

    def _collect_prepared(self, result: WorkResult) -> None:
        asset: MatchedAsset = result.item
        if result.ok:
            self._prepared.append(asset)
            return
        if result.fatal:
            return
        asset.failed = True
        self.report.add(
            ReportKind.ASSET_ERROR,
            asset.source_path,
            f"Preparation failed ({result.error_category}): {result.error}",
        )

    # ------------------------------------------------------------------
    # Phase 2: plan
    # ------------------------------------------------------------------

    def _plan_phase(self) -> List[MatchedAsset]:
        """Mark duplicates and reserve output names in a fixed order."""
        ordered = sorted(self._prepared, key=_placement_key)

        deliveries = []
        for asset in ordered:
            if not self.fingerprints.is_canonical(asset):
                asset.is_duplicate = True
                continue
            self._reserve_output(asset)
            deliveries.append(asset)

        logger.info(
            f"Plan phase complete: {{'deliveries': {len(deliveries)}, "
            f"'duplicates': {len(ordered) - len(deliveries)}, 'reserved_names': {len(self.collisions)}}}"
        )
        return deliveries

    def _reserve_output(self, asset: MatchedAsset) -> None:
        destination = self.output_path / asset.category.relative_dir()
        name = self.collisions.reserve(destination, asset.working_name)
        if name != asset.working_name:
            self.report.add(
                ReportKind.COLLISION_RESOLVED,
                asset.source_path,
                f"Name {asset.working_name!r} taken; using {name!r}",
            )
        asset.output_path = destination / name

    # ------------------------------------------------------------------
    # Phase 3: deliver
    # ------------------------------------------------------------------

    def _deliver_phase(self, deliveries: List[MatchedAsset]) -> None:
        """Deliver canonical assets, promoting a duplicate when one fails.

        A failed canonical delivery hands its content to the next copy in
        precedence order, which is delivered in a follow-up round.
        """
        self._progress = ProgressTracker(total_items=len(deliveries), phase="Delivery")

        pending = deliveries
        while pending:
            self._promoted = []
            self._deliver_round(pending)

            pending = sorted(self._promoted, key=_placement_key)
            for asset in pending:
                self._reserve_output(asset)
            self._progress.total_items += len(pending)

        self._report_duplicates()
        self._progress.log_final_summary()

    def _deliver_round(self, assets: List[MatchedAsset]) -> None:
        pool = WorkerPool(
            task=self._deliver_asset,
            on_result=self._collect_delivered,
            worker_threads=self.settings.worker_threads,
            queue_maxsize=self.settings.queue_maxsize,
            shutdown_event=self.shutdown_event,
            name="Deliver",
        )

        with pool:
            for asset in assets:
                if not pool.submit(asset):
                    break
            pool.finish()
        pool.raise_if_fatal()

    def _deliver_asset(self, asset: MatchedAsset) -> MatchedAsset:
        """Worker task: copy, tag and move one asset into place."""
        target = asset.output_path
        destination = target.parent

        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemFatalError(
                f"Cannot create output directory: {e}", path=str(destination)
            ) from e

        temp_path = destination / f"{TEMP_PREFIX}{uuid.uuid4().hex}{target.suffix}"
        try:
            self._copy_content(asset.source_path, temp_path)

            # Source modification time unless metadata supplies a capture time
            file_time = datetime.fromtimestamp(asset.candidate.mtime, tz=timezone.utc)

            if asset.metadata is not None:
                try:
                    asset.metadata_applied = self.applicator.apply(temp_path, asset.metadata)
                except MetadataApplyError as e:
                    asset.metadata_apply_failed = True
                    self.report.add(ReportKind.METADATA_APPLY_FAILED, asset.source_path, str(e))

                timestamp = asset.metadata.timestamp
                if self.settings.set_file_times and timestamp is not None:
                    file_time = timestamp

            # Set after the metadata write, which rewrites the file
            self._set_times(temp_path, file_time)

            try:
                os.replace(temp_path, target)
            except OSError as e:
                self._raise_write_error(e, target)
        except BaseException:
            self._discard(temp_path)
            raise

        return asset

    def _copy_content(self, source: Path, temp_path: Path) -> None:
        # Opening the source separately keeps read failures per-asset
        with open(source, 'rb') as src:
            try:
                with open(temp_path, 'wb') as dst:
                    shutil.copyfileobj(src, dst, self.settings.hash_chunk_size)
            except OSError as e:
                self._raise_write_error(e, temp_path)

    def _set_times(self, path: Path, when: datetime) -> None:
        try:
            set_file_times(path, when)
        except OSError as e:
            self._raise_write_error(e, path)

    @staticmethod
    def _raise_write_error(error: OSError, path: Path) -> None:
        if is_fatal_write_error(error):
            raise FilesystemFatalError(
                f"Cannot write output: {error}", path=str(path), errno=error.errno
            ) from error
        raise error

    @staticmethod
    def _discard(temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove temporary file: {{'path': {str(temp_path)!r}, 'error': {str(e)!r}}}")

    def _collect_delivered(self, result: WorkResult) -> None:
        asset: MatchedAsset = result.item
        self._progress.increment()

        if result.ok:
            self.summary.files_copied += 1
            if asset.metadata_applied:
                self.summary.metadata_applied += 1
            return
        if result.fatal:
            return

        asset.failed = True
        self.report.add(
            ReportKind.ASSET_ERROR,
            asset.source_path,
            f"Delivery failed ({result.error_category}): {result.error}",
        )

        if asset.fingerprint is None:
            return
        replacement = self.fingerprints.withdraw(asset)
        if replacement is not None and replacement.is_duplicate:
            replacement.is_duplicate = False
            self._promoted.append(replacement)
            logger.info(
                f"Promoted duplicate after failed delivery: {{'failed': {asset.report_key!r}, "
                f"'replacement': {replacement.report_key!r}}}"
            )

    def _report_duplicates(self) -> None:
        duplicates = sorted(
            (a for a in self._prepared if a.is_duplicate),
            key=_placement_key,
        )
        for asset in duplicates:
            canonical = self.fingerprints.canonical_for(asset.fingerprint)
            asset.duplicate_of = canonical.source_path
            self.report.add(
                ReportKind.DUPLICATE_SKIPPED,
                asset.source_path,
                "Identical content already delivered",
                related_path=canonical.source_path,
            )

    # ------------------------------------------------------------------
    # Wrap-up
    # ------------------------------------------------------------------

    def _finalize(self, start_time: float) -> None:
        counts: Dict[str, int] = self.report.counts()
        summary = self.summary
        summary.duplicates_skipped = counts[ReportKind.DUPLICATE_SKIPPED.value]
        summary.extensions_corrected = counts[ReportKind.EXTENSION_CORRECTED.value]
        summary.collisions_resolved = counts[ReportKind.COLLISION_RESOLVED.value]
        summary.metadata_failed = counts[ReportKind.METADATA_APPLY_FAILED.value]
        summary.warnings = self.report.warning_count
        summary.errors = self.report.error_count
        summary.duration_seconds = time.time() - start_time

        if self.settings.report_path:
            try:
                self.report.write_json(Path(self.settings.report_path), summary)
            except OSError as e:
                logger.error(
                    f"Failed to write report: {{'path': {self.settings.report_path!r}, 'error': {str(e)!r}}}"
                )
