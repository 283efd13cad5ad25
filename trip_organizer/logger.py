"""
Logging module for the trip organizer application.

This module provides centralized logging functionality with configurable
log levels and output formats, plus progress bars for long extractions.
"""

import logging
import sys
from typing import Optional

from tqdm import tqdm

from .models import RunSummary


class Logger:
    """
    Centralized logging configuration for the trip organizer application.

    Provides consistent logging across all modules with configurable
    log levels and output formats.
    """

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None):
        """
        Initialize the logger.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: Optional log file path
        """
        self.log_level = getattr(logging, log_level.upper(), logging.INFO)
        self.log_file = log_file
        self._setup_logging()

    def _setup_logging(self):
        """Set up logging configuration."""
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(self.log_level)

        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if self.log_file:
            try:
                file_handler = logging.FileHandler(self.log_file, mode='w')
                file_handler.setLevel(self.log_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
                logging.info(f"Logging to file: {self.log_file}")
            except OSError as e:
                logging.error(f"Failed to set up file logging: {e}")

        # Metadata libraries are chatty at DEBUG
        for noisy in ('PIL', 'exifread', 'hachoir'):
            logging.getLogger(noisy).setLevel(logging.WARNING)

        logging.debug("Logging system initialized")

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger instance for a specific module.

        Args:
            name: Logger name (usually __name__)

        Returns:
            Configured logger instance
        """
        return logging.getLogger(name)

    def log_operation_summary(self, summary: RunSummary, dry_run: bool = False):
        """
        Log a summary of the run.

        Args:
            summary: Counts collected during the run
            dry_run: Whether renames were only planned
        """
        logger = logging.getLogger(__name__)

        logger.info("=" * 50)
        logger.info("DRY RUN SUMMARY" if dry_run else "OPERATION SUMMARY")
        logger.info("=" * 50)
        logger.info(f"Total files found: {summary.total_files}")
        logger.info(f"Files grouped: {summary.grouped_files}")
        logger.info(f"Groups formed: {summary.group_count}")
        logger.info(f"Files without capture time: {summary.skipped_files}")
        if not dry_run:
            logger.info(f"Successful renames: {summary.renamed_files}")
            logger.info(f"Failed renames: {summary.failed_renames}")

            if summary.grouped_files > 0:
                success_rate = (summary.renamed_files / summary.grouped_files) * 100
                logger.info(f"Success rate: {success_rate:.1f}%")

        logger.info("=" * 50)

    def log_file_operation(self, operation: str, source: str, destination: str,
                           success: bool, error: Optional[str] = None):
        """
        Log a file operation with details.

        Args:
            operation: Type of operation (rename/plan)
            source: Source file name
            destination: Destination file name
            success: Whether the operation was successful
            error: Error message if operation failed
        """
        logger = logging.getLogger(__name__)

        if success:
            logger.info(f"{operation.upper()}: {source} -> {destination}")
        else:
            logger.error(f"{operation.upper()} FAILED: {source} -> {destination}")
            if error:
                logger.error(f"Error: {error}")

    def log_metadata_extraction(self, file_path: str, timestamp: Optional[int],
                                coordinates: Optional[tuple]):
        """
        Log metadata extraction results for one file.

        Args:
            file_path: Path to the file
            timestamp: Capture time in milliseconds, if found
            coordinates: GPS coordinates (lat, lon), if found
        """
        logger = logging.getLogger(__name__)

        if timestamp is None:
            logger.warning(f"No capture time in {file_path}, file will not be renamed")
            return

        if coordinates:
            lat, lon = coordinates
            logger.debug(f"Metadata for {file_path}: t={timestamp} ({lat:.6f}, {lon:.6f})")
        else:
            logger.debug(f"Metadata for {file_path}: t={timestamp}, no GPS data")

    def create_progress_bar(self, total: int, desc: str = "Processing") -> Optional[tqdm]:
        """
        Create a progress bar for tracking operations.

        Args:
            total: Total number of items to process
            desc: Description for the progress bar

        Returns:
            tqdm progress bar instance or None when there is nothing to track
        """
        if total > 0:
            return tqdm(total=total, desc=desc, unit="files", ncols=80)
        return None
