"""
Metadata extraction module for media files.

This module reads capture timestamps and GPS coordinates from image and
video files. Images are read with Pillow and exifread, videos with hachoir
and, for location tags hachoir does not expose, ffprobe.
"""

import json
import logging
import re
import subprocess
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import exifread
from hachoir.metadata import extractMetadata
from hachoir.parser import createParser
from PIL import Image
from PIL.ExifTags import GPSTAGS, TAGS

from .models import MediaRecord

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# Capture time first, then the creation (digitized) time.
IMAGE_DATE_TAGS = ('DateTimeOriginal', 'DateTimeDigitized')
IMAGE_OFFSET_TAGS = {
    'DateTimeOriginal': 'OffsetTimeOriginal',
    'DateTimeDigitized': 'OffsetTimeDigitized',
}

# QuickTime epoch placeholder written by cameras with no clock set
MIN_VALID_YEAR = 1971

ISO6709_PATTERN = re.compile(r'^\s*([+-]\d+(?:\.\d+)?)([+-]\d+(?:\.\d+)?)')
DECIMAL_PAIR_PATTERN = re.compile(r'(-?\d+(?:\.\d+)?)\s*[,;]\s*(-?\d+(?:\.\d+)?)')


def datetime_to_millis(value: datetime) -> int:
    """
    Convert a datetime to milliseconds since the epoch.

    Naive values are EXIF wall-clock times and are read in the local zone.
    Video readers attach UTC before calling this.
    """
    if value.tzinfo is None:
        value = value.astimezone()
    return int(round(value.timestamp() * 1000))


def parse_exif_datetime(value: Any, offset: Any = None) -> Optional[datetime]:
    """
    Parse an EXIF date string such as '2024:06:01 14:03:22'.

    Args:
        value: Raw tag value
        offset: Optional EXIF offset string such as '+02:00'

    Returns:
        Parsed datetime, timezone-aware when an offset is given, None if unusable
    """
    if value is None:
        return None
    text = str(value).strip().rstrip('\x00')
    if len(text) < 19:
        return None
    try:
        parsed = datetime.strptime(text[:19], EXIF_DATE_FORMAT)
    except ValueError:
        return None
    if parsed.year < MIN_VALID_YEAR:
        return None

    tz = parse_utc_offset(offset)
    if tz is not None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def parse_utc_offset(offset: Any) -> Optional[timezone]:
    if offset is None:
        return None
    match = re.match(r'^\s*([+-])(\d{2}):?(\d{2})', str(offset))
    if not match:
        return None
    sign = -1 if match.group(1) == '-' else 1
    delta = timedelta(hours=int(match.group(2)), minutes=int(match.group(3)))
    return timezone(sign * delta)


def parse_location_string(location_str: str) -> Optional[Tuple[float, float]]:
    """
    Parse location strings to extract GPS coordinates.

    Handles ISO 6709 strings as written by phones ('+37.7290-122.4135+010.0/')
    and plain decimal pairs ('37.7290, -122.4135').

    Args:
        location_str: String that might contain GPS coordinates

    Returns:
        Tuple of (latitude, longitude) if found, None otherwise
    """
    if not location_str:
        return None

    for pattern in (ISO6709_PATTERN, DECIMAL_PAIR_PATTERN):
        match = pattern.search(location_str)
        if match:
            try:
                lat = float(match.group(1))
                lon = float(match.group(2))
            except ValueError:
                continue
            if -90 <= lat <= 90 and -180 <= lon <= 180:
                return (lat, lon)
    return None


def dms_to_decimal(coord: Any, ref: Any) -> Optional[float]:
    """
    Convert degrees/minutes/seconds to decimal degrees.

    Args:
        coord: Sequence of degrees, minutes, seconds (any float-convertible values)
        ref: Hemisphere reference, N/S/E/W

    Returns:
        Decimal coordinate value, None if conversion fails
    """
    try:
        if isinstance(coord, (list, tuple)):
            if not coord:
                return None
            parts = [float(part) for part in coord[:3]]
            while len(parts) < 3:
                parts.append(0.0)
            degrees, minutes, seconds = parts
            decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)
        else:
            decimal = float(coord)
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    ref = str(ref or '').strip().upper()
    if ref in ('S', 'W'):
        decimal = -abs(decimal)
    return decimal


class MetadataExtractor:
    """
    Extracts capture timestamps and GPS coordinates from media files.

    Every file is read on its own: a failure on one file only loses that
    file's fields and never aborts the other extractions.
    """

    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.heic', '.gif', '.cr2', '.dng'}

    VIDEO_EXTENSIONS = {'.mp4', '.mov', '.avi'}

    FFPROBE_TIMEOUT = 30

    def __init__(self, use_ffprobe: bool = True):
        """
        Initialize the metadata extractor.

        Args:
            use_ffprobe: Try ffprobe for video location tags hachoir misses
        """
        self.logger = logging.getLogger(__name__)
        self.use_ffprobe = use_ffprobe

    @classmethod
    def supported_extensions(cls) -> set:
        return cls.IMAGE_EXTENSIONS | cls.VIDEO_EXTENSIONS

    def is_supported_file(self, file_path: str) -> bool:
        """
        Check if the file is a supported media file.

        Args:
            file_path: Path to the file to check

        Returns:
            True if the extension is a known image or video extension
        """
        return Path(file_path).suffix.lower() in self.supported_extensions()

    def is_video(self, file_path: str) -> bool:
        return Path(file_path).suffix.lower() in self.VIDEO_EXTENSIONS

    def build_record(self, file_path: str) -> MediaRecord:
        """
        Read timestamp and location of a file into a MediaRecord.

        Args:
            file_path: Path to the media file

        Returns:
            MediaRecord; fields that could not be read are None
        """
        timestamp = None
        coordinates = None

        try:
            timestamp = self.extract_timestamp(file_path)
        except Exception as e:
            self.logger.warning(f"Could not read capture time from {file_path}: {e}")

        try:
            coordinates = self.extract_gps_coordinates(file_path)
        except Exception as e:
            self.logger.warning(f"Could not read GPS data from {file_path}: {e}")

        latitude, longitude = coordinates if coordinates else (None, None)
        return MediaRecord.from_metadata(file_path, timestamp, latitude, longitude)

    def extract_records(self, file_paths: Iterable[str], max_workers: int = 1,
                        progress_bar=None) -> List[MediaRecord]:
        """
        Build records for many files with a bounded thread pool.

        Args:
            file_paths: Paths of the media files
            max_workers: Maximum number of concurrent extractions
            progress_bar: Optional tqdm bar advanced once per file

        Returns:
            Records in the same order as file_paths
        """
        paths = list(file_paths)

        def worker(path: str) -> MediaRecord:
            record = self.build_record(path)
            if progress_bar is not None:
                progress_bar.update(1)
            return record

        if max_workers <= 1 or len(paths) <= 1:
            return [worker(path) for path in paths]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(worker, paths))

    def extract_timestamp(self, file_path: str) -> Optional[int]:
        """
        Extract the capture time of a media file.

        Args:
            file_path: Path to the media file

        Returns:
            Milliseconds since epoch, None if no usable date tag is found
        """
        if self.is_video(file_path):
            captured = self._extract_date_from_video(file_path)
        else:
            captured = self._extract_date_from_image(file_path)

        if captured is None:
            self.logger.debug(f"No capture time found in {file_path}")
            return None
        return datetime_to_millis(captured)

    def extract_gps_coordinates(self, file_path: str) -> Optional[Tuple[float, float]]:
        """
        Extract GPS coordinates from a media file.

        Args:
            file_path: Path to the media file

        Returns:
            Tuple of (latitude, longitude) if GPS data is found, None otherwise
        """
        if self.is_video(file_path):
            return self._extract_gps_from_video(file_path)
        return self._extract_gps_from_image(file_path)

    def _read_pillow_exif(self, file_path: str) -> Dict[str, Any]:
        """Flattened EXIF tags by name, GPSInfo expanded to GPS tag names."""
        named = {}
        try:
            with Image.open(file_path) as img:
                getexif = getattr(img, '_getexif', None)
                exif_data = getexif() if getexif else None
        except Exception as e:
            self.logger.debug(f"PIL extraction failed for {file_path}: {e}")
            return named

        if not exif_data:
            return named

        for tag_id, value in exif_data.items():
            tag = TAGS.get(tag_id, tag_id)
            if tag == "GPSInfo" and isinstance(value, dict):
                gps_info = {}
                for gps_tag_id, gps_value in value.items():
                    gps_info[GPSTAGS.get(gps_tag_id, gps_tag_id)] = gps_value
                named[tag] = gps_info
            else:
                named[tag] = value
        return named

    def _read_exifread_tags(self, file_path: str) -> Dict[str, Any]:
        try:
            with open(file_path, 'rb') as f:
                return exifread.process_file(f, details=False)
        except Exception as e:
            self.logger.debug(f"exifread extraction failed for {file_path}: {e}")
            return {}

    def _extract_date_from_image(self, file_path: str) -> Optional[datetime]:
        exif = self._read_pillow_exif(file_path)
        for tag in IMAGE_DATE_TAGS:
            captured = parse_exif_datetime(exif.get(tag), exif.get(IMAGE_OFFSET_TAGS[tag]))
            if captured:
                return captured

        # HEIC and raw files usually only open with exifread
        tags = self._read_exifread_tags(file_path)
        for tag in IMAGE_DATE_TAGS:
            offset = tags.get(f'EXIF {IMAGE_OFFSET_TAGS[tag]}')
            captured = parse_exif_datetime(tags.get(f'EXIF {tag}'), offset)
            if captured:
                return captured
        return None

    def _extract_gps_from_image(self, file_path: str) -> Optional[Tuple[float, float]]:
        """
        Extract GPS coordinates from an image file using Pillow, then exifread.

        Args:
            file_path: Path to the image file

        Returns:
            Tuple of (latitude, longitude) if GPS data is found, None otherwise
        """
        gps_info = self._read_pillow_exif(file_path).get('GPSInfo')
        if gps_info:
            coords = self._convert_gps_to_decimal(gps_info, file_path)
            if coords:
                return coords

        tags = self._read_exifread_tags(file_path)
        gps_info = {}
        for tag, value in tags.items():
            if tag.startswith('GPS '):
                values = getattr(value, 'values', value)
                if isinstance(values, list) and len(values) == 1 and isinstance(values[0], str):
                    values = values[0]
                gps_info[tag[len('GPS '):]] = values
        if gps_info:
            coords = self._convert_gps_to_decimal(gps_info, file_path)
            if coords:
                return coords

        self.logger.debug(f"No GPS data found in image: {file_path}")
        return None

    def _convert_gps_to_decimal(self, gps_info: Dict[str, Any],
                                file_path: str = "") -> Optional[Tuple[float, float]]:
        """
        Convert GPS IFD entries to a decimal (latitude, longitude) pair.

        Args:
            gps_info: GPS tags keyed by name (GPSLatitude, GPSLatitudeRef, ...)
            file_path: File the tags came from, for logging

        Returns:
            Tuple of (latitude, longitude), None unless both are usable
        """
        lat = None
        lon = None
        if 'GPSLatitude' in gps_info:
            lat = dms_to_decimal(gps_info['GPSLatitude'], gps_info.get('GPSLatitudeRef', 'N'))
        if 'GPSLongitude' in gps_info:
            lon = dms_to_decimal(gps_info['GPSLongitude'], gps_info.get('GPSLongitudeRef', 'E'))

        if lat is not None and lon is not None:
            if -90 <= lat <= 90 and -180 <= lon <= 180:
                return (lat, lon)
            self.logger.debug(f"GPS coordinates out of range in {file_path}: {lat}, {lon}")
            return None

        if lat is not None or lon is not None:
            self.logger.debug(f"Incomplete GPS coordinates in {file_path}, ignoring location")
        return None

    def _extract_date_from_video(self, file_path: str) -> Optional[datetime]:
        try:
            parser = createParser(file_path)
            if parser:
                with parser:
                    metadata = extractMetadata(parser)
                if metadata and metadata.has('creation_date'):
                    created = metadata.get('creation_date')
                    if isinstance(created, datetime) and created.year >= MIN_VALID_YEAR:
                        # QuickTime stores creation time in UTC without a zone
                        if created.tzinfo is None:
                            created = created.replace(tzinfo=timezone.utc)
                        return created
        except Exception as e:
            self.logger.debug(f"Video metadata extraction failed for {file_path}: {e}")

        tags = self._ffprobe_tags(file_path)
        for tag_name in ('creation_time', 'com.apple.quicktime.creationdate', 'date'):
            if tag_name in tags:
                created = self._parse_iso_datetime(tags[tag_name])
                if created:
                    return created
        return None

    def _parse_iso_datetime(self, value: str) -> Optional[datetime]:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        # fromisoformat rejects more than 6 fractional digits
        text = re.sub(r'(\.\d{6})\d+', r'\1', text)
        try:
            created = datetime.fromisoformat(text)
        except ValueError:
            self.logger.debug(f"Unparseable video date: {value}")
            return None
        if created.year < MIN_VALID_YEAR:
            return None
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return created

    def _extract_gps_from_video(self, file_path: str) -> Optional[Tuple[float, float]]:
        """
        Extract GPS coordinates from a video file.

        Args:
            file_path: Path to the video file

        Returns:
            Tuple of (latitude, longitude) if GPS data is found, None otherwise
        """
        try:
            parser = createParser(file_path)
            if parser:
                with parser:
                    metadata = extractMetadata(parser)
                if metadata:
                    for field in ('comment',):
                        if metadata.has(field):
                            coords = parse_location_string(str(metadata.get(field)))
                            if coords:
                                return coords
        except Exception as e:
            self.logger.debug(f"Video metadata extraction failed for {file_path}: {e}")

        tags = self._ffprobe_tags(file_path)
        for tag_name in ('com.apple.quicktime.location.ISO6709', 'location', 'location-eng'):
            if tag_name in tags:
                coords = parse_location_string(tags[tag_name])
                if coords:
                    self.logger.debug(f"Found GPS data in ffprobe tag '{tag_name}': {tags[tag_name]}")
                    return coords

        self.logger.debug(f"No GPS data found in video: {file_path}")
        return None

    def _ffprobe_tags(self, file_path: str) -> Dict[str, str]:
        """
        Format and stream tags reported by ffprobe, format tags winning.

        Args:
            file_path: Path to the video file

        Returns:
            Tag dictionary, empty if ffprobe is unavailable or fails
        """
        if not self.use_ffprobe:
            return {}

        cmd = [
            'ffprobe', '-v', 'quiet', '-print_format', 'json',
            '-show_format', '-show_streams', file_path
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True,
                                    timeout=self.FFPROBE_TIMEOUT)
        except FileNotFoundError:
            self.logger.debug("ffprobe not found, video tags limited to hachoir")
            self.use_ffprobe = False
            return {}
        except subprocess.TimeoutExpired as e:
            self.logger.debug(f"ffprobe timed out for {file_path}: {e}")
            return {}

        if result.returncode != 0:
            return {}

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            self.logger.debug(f"ffprobe output not JSON for {file_path}: {e}")
            return {}

        tags: Dict[str, str] = {}
        for stream in data.get('streams', []):
            for key, value in stream.get('tags', {}).items():
                tags.setdefault(key, value)
        tags.update(data.get('format', {}).get('tags', {}))
        return tags
