"""
Tests for sorting and grouping of media records.
"""

import unittest

import pytest

from trip_organizer.grouping import (
    EARTH_RADIUS_METERS,
    filter_and_sort,
    group_records,
    haversine_distance,
    partition_by_timestamp,
    record_distance,
    should_split,
)
from trip_organizer.models import MediaRecord

FIFTEEN_MINUTES_MS = 15 * 60 * 1000


def rec(name, timestamp, latitude=None, longitude=None):
    return MediaRecord(f"/photos/{name}", timestamp, latitude, longitude, name)


class TestHaversine(unittest.TestCase):
    """Great-circle distance."""

    def test_same_point_is_zero(self):
        self.assertEqual(haversine_distance(48.85, 2.35, 48.85, 2.35), 0.0)

    def test_hundredth_degree_of_longitude_at_equator(self):
        distance = haversine_distance(0, 0, 0, 0.01)
        self.assertAlmostEqual(distance, 1111.95, delta=0.5)

    def test_quarter_meridian(self):
        distance = haversine_distance(0, 0, 90, 0)
        self.assertAlmostEqual(distance, EARTH_RADIUS_METERS * 3.141592653589793 / 2, delta=1)

    def test_antipodal_points_do_not_fail(self):
        distance = haversine_distance(0, 0, 0, 180)
        self.assertAlmostEqual(distance, EARTH_RADIUS_METERS * 3.141592653589793, delta=1)

    def test_symmetry(self):
        self.assertAlmostEqual(
            haversine_distance(51.5, -0.12, 40.71, -74.0),
            haversine_distance(40.71, -74.0, 51.5, -0.12),
        )


class TestFilterAndSort(unittest.TestCase):

    def test_drops_records_without_timestamp(self):
        records = [rec("a.jpg", None), rec("b.jpg", 10), rec("c.jpg", None)]
        self.assertEqual([r.original_name for r in filter_and_sort(records)], ["b.jpg"])

    def test_sorts_ascending(self):
        records = [rec("late.jpg", 300), rec("early.jpg", 100), rec("mid.jpg", 200)]
        names = [r.original_name for r in filter_and_sort(records)]
        self.assertEqual(names, ["early.jpg", "mid.jpg", "late.jpg"])

    def test_ties_keep_input_order(self):
        records = [rec("z.jpg", 5), rec("a.jpg", 5), rec("m.jpg", 1), rec("b.jpg", 5)]
        names = [r.original_name for r in filter_and_sort(records)]
        self.assertEqual(names, ["m.jpg", "z.jpg", "a.jpg", "b.jpg"])

    def test_zero_timestamp_is_kept(self):
        self.assertEqual(len(filter_and_sort([rec("epoch.jpg", 0)])), 1)

    def test_partition_reports_skipped(self):
        dated, undated = partition_by_timestamp([rec("a.jpg", None), rec("b.jpg", 1)])
        self.assertEqual([r.original_name for r in dated], ["b.jpg"])
        self.assertEqual([r.original_name for r in undated], ["a.jpg"])

    def test_no_timestamps_gives_empty_sequence(self):
        self.assertEqual(filter_and_sort([rec("a.jpg", None)]), [])


class TestShouldSplit(unittest.TestCase):

    def test_gap_equal_to_threshold_stays(self):
        self.assertFalse(should_split(rec("a", 0), rec("b", 1000), 1000, 100))

    def test_gap_over_threshold_splits(self):
        self.assertTrue(should_split(rec("a", 0), rec("b", 1001), 1000, 100))

    def test_distance_checked_only_with_both_locations(self):
        last = rec("a", 0, 0.0, 0.0)
        far_without_location = rec("b", 10)
        self.assertFalse(should_split(last, far_without_location, 1000, 100))
        self.assertIsNone(record_distance(last, far_without_location))

    def test_incomplete_coordinates_count_as_missing(self):
        last = rec("a", 0, 0.0, 0.0)
        lat_only = rec("b", 10, 10.0, None)
        self.assertFalse(should_split(last, lat_only, 1000, 100))

    def test_missing_location_does_not_prevent_time_split(self):
        self.assertTrue(should_split(rec("a", 0), rec("b", 5000, 0.0, 0.0), 1000, 100))

    def test_zero_coordinates_are_valid(self):
        self.assertTrue(should_split(rec("a", 0, 0.0, 0.0), rec("b", 0, 0.0, 0.01), 1000, 100))


class TestGroupRecords(unittest.TestCase):

    def test_empty_input_yields_no_groups(self):
        self.assertEqual(group_records([], FIFTEEN_MINUTES_MS, 100), [])

    def test_single_record(self):
        groups = group_records([rec("a", 0)], FIFTEEN_MINUTES_MS, 100)
        self.assertEqual(len(groups), 1)
        self.assertEqual(len(groups[0]), 1)

    def test_time_gap_example(self):
        records = [rec("a", 0), rec("b", 500000)]
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual([len(g) for g in groups], [2])

        # 500000 ms after b is still within 15 minutes
        records.append(rec("c", 1000000))
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual([len(g) for g in groups], [3])

        records.append(rec("d", 1000000 + FIFTEEN_MINUTES_MS + 1))
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual([len(g) for g in groups], [3, 1])
        self.assertEqual(groups[1][0].original_name, "d")

    def test_distance_splits_despite_zero_time_gap(self):
        records = [rec("a", 0, 0.0, 0.0), rec("b", 0, 0.0, 0.01)]
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual([[r.original_name for r in g] for g in groups], [["a"], ["b"]])

    def test_single_linkage_lets_group_drift(self):
        # Each step is 10 minutes and ~55 m; start to end is 40 minutes and ~220 m
        records = [rec(f"p{i}", i * 10 * 60 * 1000, 0.0, i * 0.0005) for i in range(5)]
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual(len(groups), 1)
        self.assertEqual(len(groups[0]), 5)

    def test_located_records_bridge_unlocated_ones(self):
        records = [
            rec("a", 0, 0.0, 0.0),
            rec("b", 1000),
            rec("c", 2000, 0.0, 0.01),
        ]
        groups = group_records(records, FIFTEEN_MINUTES_MS, 100)
        self.assertEqual(len(groups), 1)


@pytest.mark.parametrize("duration_ms,distance_m", [
    (FIFTEEN_MINUTES_MS, 100),
    (60 * 1000, 50),
    (60 * 60 * 1000, 5000),
])
def test_grouping_properties(duration_ms, distance_m):
    timestamps = [0, 30000, 30000, 400000, 2000000, 2010000, 2015000, 9000000, 9000001]
    coords = [
        (46.0, 7.0), None, (46.0, 7.0005), (46.0, 7.01), (46.0, 7.01),
        (46.1, 7.01), None, (46.1, 7.01), (46.1, 7.0101),
    ]
    records = []
    for i, (ts, coord) in enumerate(zip(timestamps, coords)):
        lat, lon = coord if coord else (None, None)
        records.append(rec(f"f{i}.jpg", ts, lat, lon))

    groups = group_records(records, duration_ms, distance_m)

    # Concatenation reproduces the input exactly
    assert [r for g in groups for r in g] == records
    assert all(groups)

    for group in groups:
        for last, curr in zip(group, group[1:]):
            assert curr.timestamp - last.timestamp <= duration_ms
            distance = record_distance(last, curr)
            if distance is not None:
                assert distance <= distance_m

    for before, after in zip(groups, groups[1:]):
        assert should_split(before[-1], after[0], duration_ms, distance_m)
