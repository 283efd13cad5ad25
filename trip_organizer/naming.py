"""
Naming of grouped media records.

Planning is kept apart from renaming: the NamingEngine only asks whether a
path exists and remembers what it already handed out, so a plan can be
computed against a snapshot (or a mock) of the filesystem and applied later.
"""

import logging
import os
from typing import Callable, Iterable, List, NamedTuple, Optional, Set

from .grouping import group_records, partition_by_timestamp
from .models import Group, MediaRecord, RenameEntry

GROUP_LABEL_PREFIX = "Location"
SEQUENCE_WIDTH = 3


class RunPlan(NamedTuple):
    """Everything the planning phase produces for one run."""
    entries: List[RenameEntry]
    groups: List[Group]
    skipped: List[MediaRecord]


def group_label(group_index: int) -> str:
    """Label of the 1-based group index, e.g. Location3."""
    return f"{GROUP_LABEL_PREFIX}{group_index}"


def base_name(group_index: int, position: int) -> str:
    """Target stem without collision suffix, e.g. Location1_001."""
    return f"{group_label(group_index)}_{position:0{SEQUENCE_WIDTH}d}"


class NamingEngine:
    """
    Assigns collision-free target paths to grouped records.

    A candidate is taken only if it is absent from disk and not yet claimed
    earlier in this plan. Otherwise _1, _2, ... is appended to the stem.
    """

    def __init__(self, path_exists: Optional[Callable[[str], bool]] = None):
        """
        Initialize the naming engine.

        Args:
            path_exists: Existence check for candidate paths, os.path.exists by default
        """
        self.logger = logging.getLogger(__name__)
        self.path_exists = path_exists or os.path.exists
        self._claimed: Set[str] = set()

    def _is_taken(self, candidate: str) -> bool:
        return candidate in self._claimed or self.path_exists(candidate)

    def claim(self, directory: str, stem: str, extension: str) -> str:
        """
        Reserve the first free path for stem in directory.

        Args:
            directory: Directory the file will live in
            stem: Desired name without extension
            extension: Extension to keep, including the dot

        Returns:
            Reserved absolute path
        """
        candidate = os.path.join(directory, f"{stem}{extension}")
        counter = 1
        while self._is_taken(candidate):
            self.logger.debug(f"Name collision for {os.path.basename(candidate)}")
            candidate = os.path.join(directory, f"{stem}_{counter}{extension}")
            counter += 1

        self._claimed.add(candidate)
        return candidate

    def assign(self, groups: Iterable[Group]) -> List[RenameEntry]:
        """
        Build the rename plan for ordered groups.

        Args:
            groups: Groups in sequence order, records in arrival order

        Returns:
            One RenameEntry per record, in group then position order
        """
        plan = []
        for group_index, group in enumerate(groups, start=1):
            for position, record in enumerate(group, start=1):
                directory = os.path.dirname(record.path)
                extension = os.path.splitext(record.path)[1]
                target = self.claim(directory, base_name(group_index, position), extension)
                plan.append(RenameEntry(source_path=record.path, target_path=target))
        return plan


def plan_run(records: Iterable[MediaRecord], duration_threshold_ms: int,
             distance_threshold_meters: float,
             path_exists: Optional[Callable[[str], bool]] = None) -> RunPlan:
    """
    Filter, sort, group and name records in one pass.

    Args:
        records: Records as read from metadata, in listing order
        duration_threshold_ms: Largest allowed time gap in milliseconds
        distance_threshold_meters: Largest allowed distance in meters
        path_exists: Existence check used for collision detection

    Returns:
        RunPlan with rename entries, groups and records without timestamp
    """
    dated, undated = partition_by_timestamp(records)
    groups = group_records(dated, duration_threshold_ms, distance_threshold_meters)
    entries = NamingEngine(path_exists).assign(groups)
    return RunPlan(entries=entries, groups=groups, skipped=undated)


def compute_rename_plan(records: Iterable[MediaRecord], duration_threshold_ms: int,
                        distance_threshold_meters: float,
                        path_exists: Optional[Callable[[str], bool]] = None) -> List[RenameEntry]:
    """Ordered (source, target) renames for records; empty if none has a timestamp."""
    return plan_run(records, duration_threshold_ms, distance_threshold_meters,
                    path_exists).entries
