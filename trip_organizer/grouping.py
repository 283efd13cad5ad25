"""
Grouping of media records into trip segments.

Records are sorted by capture time and walked once. Each record is compared
with the last record of the current group only (single linkage), so a group
may drift further than either threshold as long as every step stays close.
"""

import logging
import math
from typing import Iterable, List, Tuple

from .models import Group, MediaRecord

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points given in degrees.

    Args:
        lat1: Latitude of the first point
        lon1: Longitude of the first point
        lat2: Latitude of the second point
        lon2: Longitude of the second point

    Returns:
        Distance in meters on a sphere of Earth's mean radius
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    # Rounding can push a just past 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def record_distance(first: MediaRecord, second: MediaRecord):
    """Distance in meters between two records, or None if either has no location."""
    if not (first.has_coordinates and second.has_coordinates):
        return None
    return haversine_distance(first.latitude, first.longitude,
                              second.latitude, second.longitude)


def partition_by_timestamp(records: Iterable[MediaRecord]) -> Tuple[List[MediaRecord], List[MediaRecord]]:
    """
    Split records into organizable and skipped ones.

    Args:
        records: Records in input order

    Returns:
        Tuple of (timestamped records sorted by time, records without timestamp)
    """
    dated = []
    undated = []
    for record in records:
        if record.has_timestamp:
            dated.append(record)
        else:
            undated.append(record)

    # sorted() is stable, ties keep input order
    dated = sorted(dated, key=lambda record: record.timestamp)
    return dated, undated


def filter_and_sort(records: Iterable[MediaRecord]) -> List[MediaRecord]:
    """Drop records without a timestamp and sort the rest by capture time."""
    dated, _ = partition_by_timestamp(records)
    return dated


def should_split(last: MediaRecord, current: MediaRecord,
                 duration_threshold_ms: int, distance_threshold_meters: float) -> bool:
    """
    Decide whether current starts a new group after last.

    Args:
        last: Last record added to the current group
        current: Record being placed
        duration_threshold_ms: Largest allowed time gap in milliseconds
        distance_threshold_meters: Largest allowed distance in meters

    Returns:
        True if the time gap or the measurable distance exceeds its threshold
    """
    if current.timestamp - last.timestamp > duration_threshold_ms:
        return True

    distance = record_distance(last, current)
    if distance is None:
        return False
    return distance > distance_threshold_meters


def group_records(sorted_records: List[MediaRecord], duration_threshold_ms: int,
                  distance_threshold_meters: float) -> List[Group]:
    """
    Partition time-sorted records into maximal runs of close records.

    Args:
        sorted_records: Records with timestamps, ascending by time
        duration_threshold_ms: Largest allowed time gap in milliseconds
        distance_threshold_meters: Largest allowed distance in meters

    Returns:
        Ordered list of non-empty groups covering every record once
    """
    groups: List[Group] = []
    if not sorted_records:
        return groups

    current_group = [sorted_records[0]]
    for record in sorted_records[1:]:
        last = current_group[-1]
        if should_split(last, record, duration_threshold_ms, distance_threshold_meters):
            groups.append(current_group)
            current_group = [record]
        else:
            current_group.append(record)
    groups.append(current_group)

    logger.debug(f"Grouped {len(sorted_records)} records into {len(groups)} groups")
    return groups
