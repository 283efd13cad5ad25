"""
Exceptions raised by the trip organizer.
"""


class OrganizerError(Exception):
    """Base class for trip organizer errors."""


class InvalidConfiguration(OrganizerError):
    """Raised when run settings are unusable, before any file is touched."""
