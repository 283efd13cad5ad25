"""
Shared pytest fixtures for the trip organizer test suite.
"""

import pytest


@pytest.fixture
def media_dir(tmp_path):
    """Directory with a few empty media files, a non-media file and a subfolder."""
    for name in ("b.jpg", "a.JPG", "clip.mov", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "deep.jpg").write_bytes(b"")
    return tmp_path
