"""
Trip Organizer Package

A Python package for organizing media files into trip segments.
Reads capture time and GPS metadata from images and videos, groups files
taken close together in time and place, and renames them in place as
Location<group>_<number>.
"""

__version__ = "1.0.0"
__author__ = "Trip Organizer Team"

from .models import MediaRecord, RenameEntry, RenameResult, RunSummary
from .grouping import filter_and_sort, group_records, haversine_distance
from .naming import NamingEngine, compute_rename_plan
from .metadata_extractor import MetadataExtractor
from .file_organizer import FileOrganizer
from .logger import Logger

__all__ = [
    "MediaRecord",
    "RenameEntry",
    "RenameResult",
    "RunSummary",
    "filter_and_sort",
    "group_records",
    "haversine_distance",
    "NamingEngine",
    "compute_rename_plan",
    "MetadataExtractor",
    "FileOrganizer",
    "Logger",
]
