"""
Run configuration for the trip organizer.

Holds the grouping thresholds and runtime options collected by the driver
(command-line flags or interactive prompts) and validates them before any
file is processed.
"""

import math
import os
from typing import Optional

from .exceptions import InvalidConfiguration

DEFAULT_DURATION_MINUTES = 15
DEFAULT_DISTANCE_METERS = 100
DEFAULT_MAX_WORKERS = 4
MAX_WORKERS_LIMIT = 32

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


class OrganizerConfig:
    """
    Settings for a single organizing run.

    Thresholds are kept in the units users think in (minutes and meters);
    the grouping engine receives milliseconds via duration_threshold_ms.
    """

    def __init__(self, directory: Optional[str] = None,
                 duration_minutes: float = DEFAULT_DURATION_MINUTES,
                 distance_meters: float = DEFAULT_DISTANCE_METERS,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 dry_run: bool = False,
                 log_level: str = "INFO",
                 log_file: Optional[str] = None):
        """
        Initialize the configuration.

        Args:
            directory: Directory holding the media files to organize
            duration_minutes: Max minutes between consecutive files of a group
            distance_meters: Max meters between consecutive files of a group
            max_workers: Worker threads for metadata extraction and renaming
            dry_run: If True, only report the planned renames
            log_level: Logging level name
            log_file: Optional log file path
        """
        self.directory = directory
        self.duration_minutes = duration_minutes
        self.distance_meters = distance_meters
        self.max_workers = max_workers
        self.dry_run = dry_run
        self.log_level = log_level
        self.log_file = log_file

    @property
    def duration_threshold_ms(self) -> int:
        return int(round(self.duration_minutes * 60 * 1000))

    @property
    def distance_threshold_meters(self) -> float:
        return float(self.distance_meters)

    def validate(self, require_directory: bool = True) -> "OrganizerConfig":
        """
        Check every setting and raise on the first unusable one.

        Args:
            require_directory: Also check that the directory exists

        Returns:
            The configuration itself, resolved directory included

        Raises:
            InvalidConfiguration: If a threshold is not a positive number,
                the worker count is out of range, or the directory is missing
        """
        self.duration_minutes = self._positive_number(self.duration_minutes, "duration")
        if not math.isfinite(self.duration_minutes * 60 * 1000):
            raise InvalidConfiguration(f"Duration is too large: {self.duration_minutes!r} minutes")
        self.distance_meters = self._positive_number(self.distance_meters, "distance")

        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise InvalidConfiguration(f"Worker count must be an integer, got {self.max_workers!r}")
        if not 1 <= self.max_workers <= MAX_WORKERS_LIMIT:
            raise InvalidConfiguration(
                f"Worker count must be between 1 and {MAX_WORKERS_LIMIT}, got {self.max_workers}"
            )

        if str(self.log_level).upper() not in LOG_LEVELS:
            raise InvalidConfiguration(f"Unknown log level: {self.log_level}")
        self.log_level = str(self.log_level).upper()

        if require_directory:
            if not self.directory:
                raise InvalidConfiguration("A media directory is required")
            self.directory = resolve_path(self.directory)
            if not os.path.isdir(self.directory):
                raise InvalidConfiguration(f"Directory does not exist: {self.directory}")

        return self

    @staticmethod
    def _positive_number(value, name: str) -> float:
        if isinstance(value, bool):
            raise InvalidConfiguration(f"{name.capitalize()} must be a positive number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidConfiguration(f"{name.capitalize()} must be a positive number, got {value!r}")
        if number != number or number <= 0 or number == float("inf"):
            raise InvalidConfiguration(f"{name.capitalize()} must be a positive number, got {value!r}")
        return number

    def __repr__(self) -> str:
        return (f"OrganizerConfig(directory={self.directory!r}, "
                f"duration_minutes={self.duration_minutes!r}, "
                f"distance_meters={self.distance_meters!r}, "
                f"max_workers={self.max_workers!r}, dry_run={self.dry_run!r})")


def resolve_path(input_path: str) -> str:
    """Expand a leading ~ and return an absolute path."""
    return os.path.abspath(os.path.expanduser(input_path.strip()))
