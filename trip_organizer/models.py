"""
Data types shared across the trip organizer.

Records are built once from metadata reads, flow through sorting, grouping
and naming, and are discarded after the rename plan has been applied.
"""

import os
from typing import List, NamedTuple, Optional


class MediaRecord(NamedTuple):
    """Metadata container for a single media file."""
    path: str
    timestamp: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    original_name: str = ""

    @classmethod
    def from_metadata(cls, path: str, timestamp: Optional[int] = None,
                      latitude: Optional[float] = None,
                      longitude: Optional[float] = None) -> "MediaRecord":
        """
        Build a record for a file, deriving the original name from its path.

        Args:
            path: Path to the media file
            timestamp: Capture time in milliseconds since epoch
            latitude: Latitude in degrees
            longitude: Longitude in degrees

        Returns:
            New MediaRecord with an absolute path
        """
        abs_path = os.path.abspath(path)
        return cls(
            path=abs_path,
            timestamp=timestamp,
            latitude=latitude,
            longitude=longitude,
            original_name=os.path.basename(abs_path),
        )

    @property
    def has_timestamp(self) -> bool:
        return self.timestamp is not None

    @property
    def has_coordinates(self) -> bool:
        # A lone latitude or longitude does not count as a location.
        return self.latitude is not None and self.longitude is not None


Group = List[MediaRecord]


class RenameEntry(NamedTuple):
    """One planned rename: source path to target path."""
    source_path: str
    target_path: str

    @property
    def source_name(self) -> str:
        return os.path.basename(self.source_path)

    @property
    def target_name(self) -> str:
        return os.path.basename(self.target_path)


class RenameResult(NamedTuple):
    """Outcome of applying a single RenameEntry."""
    entry: RenameEntry
    success: bool
    error: Optional[str] = None


class RunSummary(NamedTuple):
    """Counts reported at the end of a run."""
    total_files: int
    grouped_files: int
    group_count: int
    skipped_files: int = 0
    renamed_files: int = 0
    failed_renames: int = 0
