"""Command line entry point: organize an export bundle into an output tree."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from takeout_organizer.common import ConfigLoader, setup_logging

from .config import OrganizerConfig
from .errors import FilesystemFatalError
from .organizer import PipelineOrchestrator

APP_NAME = "takeout-organizer"

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Reorganize a Google Photos export into general/, shared/shared/ and albums/<name>/"
    )
    parser.add_argument(
        "input_dir",
        type=Path,
        help="Extracted export bundle (the folder holding Takeout/ or the category folders)"
    )
    parser.add_argument(
        "output_dir",
        type=Path,
        help="Directory to write the organized tree to (created if missing)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Number of worker threads (overrides config)"
    )
    parser.add_argument(
        "--no-metadata",
        action="store_true",
        help="Copy files without writing sidecar metadata into them"
    )
    parser.add_argument(
        "--exiftool",
        help="Path to the exiftool executable (overrides config)"
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Write a JSON report of all warnings and errors to this path"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Log level (overrides config)"
    )
    return parser


def collect_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Turn CLI flags into a nested config override dict."""
    organizer: Dict[str, Any] = {}
    if args.workers is not None:
        organizer['worker_threads'] = args.workers
    if args.no_metadata:
        organizer['apply_metadata'] = False
    if args.exiftool:
        organizer['exiftool_path'] = args.exiftool
    if args.report is not None:
        organizer['report_path'] = str(args.report)
    
    overrides: Dict[str, Any] = {}
    if organizer:
        overrides['organizer'] = organizer
    if args.log_level:
        overrides['logging'] = {'level': args.log_level}
    return overrides


def organize_command(config: OrganizerConfig, input_dir: Path, output_dir: Path) -> int:
    """Run the organizer and map the outcome to an exit code.
    
    Returns:
        0 when the run completes (warnings included), 1 on a fatal
        filesystem error, 2 if the input directory does not exist
    """
    if not input_dir.is_dir():
        logger.error(f"Input directory does not exist: {{'path': {str(input_dir)!r}}}")
        return EXIT_USAGE
    
    orchestrator = PipelineOrchestrator(
        input_path=input_dir,
        output_path=output_dir,
        settings=config.organizer,
    )
    
    try:
        summary = orchestrator.run()
    except FilesystemFatalError as e:
        logger.error(f"Fatal filesystem error: {{'error': {str(e)!r}, 'context': {e.context!r}}}")
        return EXIT_FATAL
    
    logger.info(f"Summary: {summary.to_dict()}")
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    loader = ConfigLoader(app_name=APP_NAME, config_class=OrganizerConfig)
    try:
        config = loader.load(defaults_path=args.config, overrides=collect_overrides(args))
    except (FileNotFoundError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE
    
    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(level=config.logging.level, format=config.logging.format, log_file=log_file)
    
    return organize_command(config, args.input_dir, args.output_dir)


if __name__ == "__main__":
    sys.exit(main())
