"""
Main entry point for the Trip Organizer application.

This module handles user interaction and orchestrates the organization
process: directory scanning, metadata extraction, grouping, rename planning
and rename execution.
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .config import (
    DEFAULT_DISTANCE_METERS,
    DEFAULT_DURATION_MINUTES,
    DEFAULT_MAX_WORKERS,
    OrganizerConfig,
    resolve_path,
)
from .exceptions import InvalidConfiguration
from .file_organizer import FileOrganizer
from .logger import Logger
from .metadata_extractor import MetadataExtractor
from .models import RunSummary
from .naming import RunPlan, plan_run

EXIT_OK = 0
EXIT_RENAME_FAILURES = 1
EXIT_INVALID_CONFIGURATION = 2
EXIT_CANCELLED = 130


class TripOrganizer:
    """
    Main application class that orchestrates the organizing process.

    Coordinates the metadata extractor, the grouping and naming engines and
    the file organizer for one directory.
    """

    def __init__(self, config: OrganizerConfig, logger: Optional[Logger] = None,
                 metadata_extractor: Optional[MetadataExtractor] = None,
                 file_organizer: Optional[FileOrganizer] = None):
        """
        Initialize the trip organizer.

        Args:
            config: Validated run configuration
            logger: Logging setup, created from the configuration if omitted
            metadata_extractor: Metadata provider, MetadataExtractor by default
            file_organizer: Directory scanner and rename executor
        """
        self.config = config
        self.logger = logger or Logger(config.log_level, config.log_file)
        self.log = self.logger.get_logger(__name__)

        self.metadata_extractor = metadata_extractor or MetadataExtractor()
        self.file_organizer = file_organizer or FileOrganizer(
            self.metadata_extractor.supported_extensions()
        )
        self.summary: Optional[RunSummary] = None

    def plan(self) -> RunPlan:
        """
        Scan the directory, read metadata and compute the rename plan.

        Returns:
            RunPlan for the configured directory
        """
        directory = self.config.directory
        self.log.info(f"Scanning directory: {directory}")
        media_files = self.file_organizer.scan_directory(directory)

        progress_bar = self.logger.create_progress_bar(len(media_files), "Extracting metadata")
        try:
            records = self.metadata_extractor.extract_records(
                media_files, self.config.max_workers, progress_bar
            )
        finally:
            if progress_bar:
                progress_bar.close()

        for record in records:
            coordinates = (record.latitude, record.longitude) if record.has_coordinates else None
            self.logger.log_metadata_extraction(record.path, record.timestamp, coordinates)

        run_plan = plan_run(
            records,
            self.config.duration_threshold_ms,
            self.config.distance_threshold_meters,
        )
        self.summary = RunSummary(
            total_files=len(media_files),
            grouped_files=len(run_plan.entries),
            group_count=len(run_plan.groups),
            skipped_files=len(run_plan.skipped),
        )
        return run_plan

    def run(self) -> bool:
        """
        Run the organizer on the configured directory.

        Returns:
            True if every planned rename succeeded (or nothing had to be done)
        """
        self.log.info(
            f"Grouping with max {self.config.duration_minutes:g} minutes and "
            f"{self.config.distance_meters:g} meters between files"
        )
        run_plan = self.plan()

        if not run_plan.entries:
            if self.summary.total_files == 0:
                self.log.warning("No media files found in the directory.")
            else:
                self.log.warning("No organizable files: none of the media files has a capture time.")
            self.logger.log_operation_summary(self.summary, self.config.dry_run)
            return True

        if self.config.dry_run:
            for entry in run_plan.entries:
                self.logger.log_file_operation("plan", entry.source_name, entry.target_name, True)
            self.logger.log_operation_summary(self.summary, dry_run=True)
            return True

        progress_bar = self.logger.create_progress_bar(len(run_plan.entries), "Renaming files")
        try:
            results = self.file_organizer.execute_plan(
                run_plan.entries, self.config.max_workers, progress_bar
            )
        finally:
            if progress_bar:
                progress_bar.close()

        for result in results:
            self.logger.log_file_operation(
                "rename", result.entry.source_name, result.entry.target_name,
                result.success, result.error
            )

        renamed = sum(1 for result in results if result.success)
        self.summary = self.summary._replace(
            renamed_files=renamed,
            failed_renames=len(results) - renamed,
        )
        self.file_organizer.log_failed_files_summary()
        self.logger.log_operation_summary(self.summary)
        return self.summary.failed_renames == 0


def build_parser() -> argparse.ArgumentParser:
    """Command-line parser for the trip-organizer command."""
    parser = argparse.ArgumentParser(
        prog="trip-organizer",
        description="Organize media files by timestamp and geolocation metadata",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  trip-organizer ~/Pictures/Holiday
  trip-organizer ~/Pictures/Holiday --duration 30 --distance 250
  trip-organizer --dry-run ~/Pictures/Holiday
  trip-organizer -i

Files are renamed in place to Location<group>_<number>.<ext>. A new group
starts when the time gap to the previous file exceeds the duration, or when
both files carry GPS data and are further apart than the distance.
        """
    )

    parser.add_argument('directory', nargs='?', help='Path to media files')
    parser.add_argument(
        '--duration', default=str(DEFAULT_DURATION_MINUTES),
        help=f'Max minutes between files in a group (default: {DEFAULT_DURATION_MINUTES})'
    )
    parser.add_argument(
        '--distance', default=str(DEFAULT_DISTANCE_METERS),
        help=f'Max distance between files in meters (default: {DEFAULT_DISTANCE_METERS})'
    )
    parser.add_argument('-i', '--interactive', action='store_true', help='Run in interactive mode')
    parser.add_argument(
        '--dry-run', action='store_true',
        help='Show what would be renamed without actually renaming files'
    )
    parser.add_argument(
        '--workers', type=int, default=DEFAULT_MAX_WORKERS,
        help=f'Concurrent workers for metadata extraction and renaming (default: {DEFAULT_MAX_WORKERS})'
    )
    parser.add_argument('--log-level', default='INFO', help='Logging level (default: INFO)')
    parser.add_argument('--log-file', help='Also write the log to this file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def prompt_directory() -> str:
    """Ask for a media directory until an existing one is given."""
    while True:
        directory = resolve_path(input("📂 Enter the path to your media files: "))
        if os.path.isdir(directory):
            return directory
        print(f"Error: Directory does not exist: {directory}")


def prompt_positive_number(message: str, default: float) -> float:
    """Ask for a positive number; an empty answer keeps the default."""
    while True:
        answer = input(f"{message} [{default:g}]: ").strip()
        if not answer:
            return default
        try:
            value = float(answer)
        except ValueError:
            print("Error: Please enter a valid number.")
            continue
        if value > 0:
            return value
        print("Error: Must be a positive number!")


def get_user_input(config: OrganizerConfig) -> OrganizerConfig:
    """
    Fill the configuration interactively.

    Args:
        config: Configuration holding command-line values as defaults

    Returns:
        The same configuration with the answers applied
    """
    print("\n" + "=" * 60)
    print("🏞️  TRIP ORGANIZER")
    print("=" * 60)
    print("Let's organize your media files...")
    print("Files taken close together in time and place share a Location group.")
    print("=" * 60)

    config.directory = prompt_directory()
    config.duration_minutes = prompt_positive_number(
        "⏱️  Maximum minutes between files in a group", float(config.duration_minutes)
    )
    config.distance_meters = prompt_positive_number(
        "📍 Maximum distance between files in meters", float(config.distance_meters)
    )
    return config


def config_from_args(args: argparse.Namespace) -> OrganizerConfig:
    return OrganizerConfig(
        directory=args.directory,
        duration_minutes=args.duration,
        distance_meters=args.distance,
        max_workers=args.workers,
        dry_run=args.dry_run,
        log_level=args.log_level,
        log_file=args.log_file,
    )


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    try:
        if args.interactive or not args.directory:
            # Validate flags before asking anything
            config.validate(require_directory=False)
            get_user_input(config)
        config.validate()
    except InvalidConfiguration as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_INVALID_CONFIGURATION)
    except (KeyboardInterrupt, EOFError):
        print("\n\nOperation cancelled by user.")
        sys.exit(EXIT_CANCELLED)

    print(f"\n🚀 Starting organization process{' (dry run)' if config.dry_run else ''}...")
    try:
        organizer = TripOrganizer(config)
        success = organizer.run()
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        sys.exit(EXIT_CANCELLED)

    if success:
        summary = organizer.summary
        print(f"\n✅ Organized {summary.grouped_files} files into {summary.group_count} groups!")
    else:
        print("\nOperation completed with some errors. Check the log for details.")
    sys.exit(EXIT_OK if success else EXIT_RENAME_FAILURES)


if __name__ == "__main__":
    main()
