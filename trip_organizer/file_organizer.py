"""
File organization module for media files.

This module lists the media files of a directory and applies a finished
rename plan to the filesystem.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .models import RenameEntry, RenameResult


class FileOrganizer:
    """
    Handles directory scanning and in-place renaming of media files.

    Renames are applied from a plan computed up front, so entries are
    independent: one failing rename is reported and the rest still run.
    """

    def __init__(self, supported_extensions: Iterable[str],
                 rename_path: Optional[Callable[[str, str], None]] = None):
        """
        Initialize the file organizer.

        Args:
            supported_extensions: Lower-case extensions (with dot) to pick up
            rename_path: Rename function, os.rename by default
        """
        self.logger = logging.getLogger(__name__)
        self.supported_extensions = {ext.lower() for ext in supported_extensions}
        self.rename_path = rename_path or os.rename

        self.renamed_files_count = 0
        self.failed_files_count = 0

    def scan_directory(self, source_dir: str) -> List[str]:
        """
        List media files directly inside a directory.

        Args:
            source_dir: Directory to scan

        Returns:
            Absolute media file paths, sorted by name
        """
        media_files = []
        source_path = Path(source_dir)

        if not source_path.is_dir():
            self.logger.error(f"Source directory does not exist: {source_dir}")
            return media_files

        try:
            for file_path in sorted(source_path.iterdir()):
                if file_path.is_file() and file_path.suffix.lower() in self.supported_extensions:
                    media_files.append(str(file_path.resolve()))
        except OSError as e:
            self.logger.error(f"Error scanning directory {source_dir}: {e}")
            return media_files

        self.logger.info(f"Found {len(media_files)} media files in {source_dir}")
        return media_files

    def rename_file(self, entry: RenameEntry) -> RenameResult:
        """
        Apply a single planned rename.

        Args:
            entry: Planned source and target paths

        Returns:
            RenameResult with the error message if the rename failed
        """
        try:
            self.rename_path(entry.source_path, entry.target_path)
        except OSError as e:
            self.logger.error(f"Failed to rename {entry.source_name} -> {entry.target_name}: {e}")
            return RenameResult(entry=entry, success=False, error=str(e))

        self.logger.debug(f"Renamed: {entry.source_path} -> {entry.target_path}")
        return RenameResult(entry=entry, success=True)

    def execute_plan(self, plan: List[RenameEntry], max_workers: int = 1,
                     progress_bar=None) -> List[RenameResult]:
        """
        Apply every entry of a rename plan.

        Args:
            plan: Finished rename plan
            max_workers: Number of concurrent renames
            progress_bar: Optional tqdm bar advanced once per entry

        Returns:
            One RenameResult per entry, in plan order
        """
        def worker(entry: RenameEntry) -> RenameResult:
            result = self.rename_file(entry)
            if progress_bar is not None:
                progress_bar.update(1)
            return result

        if max_workers <= 1 or len(plan) <= 1:
            results = [worker(entry) for entry in plan]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                results = list(executor.map(worker, plan))

        succeeded = sum(1 for result in results if result.success)
        self.renamed_files_count += succeeded
        self.failed_files_count += len(results) - succeeded
        return results

    def log_failed_files_summary(self):
        """
        Log a summary of failed renames.
        """
        if self.failed_files_count > 0:
            self.logger.warning(f"Total files that could not be renamed: {self.failed_files_count}")
        else:
            self.logger.info("All planned renames were applied")
