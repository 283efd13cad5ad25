"""
Tests that read real EXIF tags written by Pillow, and video dates from hachoir.
"""

import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, Mock, patch

import pytest
from PIL import Image

from trip_organizer.grouping import filter_and_sort, group_records
from trip_organizer.metadata_extractor import MetadataExtractor, datetime_to_millis

EXIF_IFD = 0x8769
GPS_IFD = 0x8825
DATETIME_ORIGINAL = 0x9003
DATETIME_DIGITIZED = 0x9004
OFFSET_TIME_ORIGINAL = 0x9011

FIFTEEN_MINUTES_MS = 15 * 60 * 1000


def write_jpeg(path, original=None, digitized=None, offset=None, gps=None):
    """Write a small JPEG with the given EXIF date, offset and GPS tags."""
    exif = Image.Exif()
    exif_ifd = exif.get_ifd(EXIF_IFD)
    if original:
        exif_ifd[DATETIME_ORIGINAL] = original
    if digitized:
        exif_ifd[DATETIME_DIGITIZED] = digitized
    if offset:
        exif_ifd[OFFSET_TIME_ORIGINAL] = offset
    if gps:
        (lat, lat_ref), (lon, lon_ref) = gps
        gps_ifd = exif.get_ifd(GPS_IFD)
        gps_ifd[1] = lat_ref
        gps_ifd[2] = lat
        gps_ifd[3] = lon_ref
        gps_ifd[4] = lon
    Image.new("RGB", (8, 8), color=(30, 60, 90)).save(str(path), "JPEG", exif=exif)
    return str(path)


def local_millis(*args):
    return datetime_to_millis(datetime(*args))


@pytest.fixture
def extractor():
    return MetadataExtractor(use_ffprobe=False)


@pytest.fixture
def berlin_time(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


def test_original_date_wins_over_digitized(extractor, tmp_path):
    path = write_jpeg(tmp_path / "a.jpg", original="2024:06:01 14:03:22",
                      digitized="2024:06:01 15:00:00")
    record = extractor.build_record(path)
    assert record.timestamp == local_millis(2024, 6, 1, 14, 3, 22)


def test_digitized_date_used_when_original_missing(extractor, tmp_path):
    path = write_jpeg(tmp_path / "a.jpg", digitized="2024:06:01 15:00:00")
    record = extractor.build_record(path)
    assert record.timestamp == local_millis(2024, 6, 1, 15, 0, 0)


def test_offset_tag_is_applied(extractor, tmp_path):
    path = write_jpeg(tmp_path / "a.jpg", original="2024:06:01 14:00:00", offset="+02:00")
    record = extractor.build_record(path)
    expected = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert record.timestamp == datetime_to_millis(expected)


def test_gps_ifd_is_read(extractor, tmp_path):
    path = write_jpeg(
        tmp_path / "a.jpg",
        original="2024:06:01 14:00:00",
        gps=(((48.0, 51.0, 29.0), "N"), ((2.0, 17.0, 40.0), "W")),
    )
    record = extractor.build_record(path)
    assert record.has_coordinates
    assert record.latitude == pytest.approx(48.85806, abs=1e-4)
    assert record.longitude == pytest.approx(-2.29444, abs=1e-4)


def test_exifread_fallback(extractor, tmp_path):
    path = write_jpeg(
        tmp_path / "a.jpg",
        original="2024:06:01 14:03:22",
        gps=(((33.0, 52.0, 4.8), "S"), ((151.0, 12.0, 36.0), "E")),
    )
    with patch.object(MetadataExtractor, "_read_pillow_exif", return_value={}):
        record = extractor.build_record(path)
    assert record.timestamp == local_millis(2024, 6, 1, 14, 3, 22)
    assert record.latitude == pytest.approx(-33.868, abs=1e-3)
    assert record.longitude == pytest.approx(151.21, abs=1e-3)


def test_photo_and_video_of_same_moment_share_a_group(extractor, tmp_path, berlin_time):
    photo = write_jpeg(tmp_path / "photo.jpg", original="2024:06:01 14:00:00")
    video = tmp_path / "clip.mov"
    video.write_bytes(b"")

    # QuickTime keeps UTC without a zone; 14:00 in Berlin is 12:00 UTC
    video_date = datetime(2024, 6, 1, 12, 0, 30)
    metadata = Mock()
    metadata.has.side_effect = lambda key: key == "creation_date"
    metadata.get.side_effect = lambda key: video_date

    with patch("trip_organizer.metadata_extractor.createParser", return_value=MagicMock()), \
            patch("trip_organizer.metadata_extractor.extractMetadata", return_value=metadata):
        records = extractor.extract_records([str(video), photo])

    video_record, photo_record = records
    assert video_record.timestamp - photo_record.timestamp == 30 * 1000

    groups = group_records(filter_and_sort(records), FIFTEEN_MINUTES_MS, 100)
    assert [[r.original_name for r in group] for group in groups] == [["photo.jpg", "clip.mov"]]


def test_zoneless_ffprobe_date_is_utc(extractor):
    created = extractor._parse_iso_datetime("2024-06-01 12:00:00")
    assert created.utcoffset() == timedelta(0)
    created = extractor._parse_iso_datetime("2024-06-01T12:00:00.000000Z")
    assert created == datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
