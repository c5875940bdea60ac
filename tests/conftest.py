"""Shared fixtures for quotasync tests."""
from datetime import datetime

import pytest

from quotasync.models import QuotaSnapshot, SourceMapping


@pytest.fixture
def now():
    return datetime(2024, 5, 14, 3, 0, 0)


@pytest.fixture
def snapshot(now):
    return QuotaSnapshot(total_bytes=100, used_bytes=60, observed_at=now)


@pytest.fixture
def source_dirs(tmp_path):
    """Two readable source directories with matching mappings."""
    photos = tmp_path / "photos"
    videos = tmp_path / "videos"
    photos.mkdir()
    videos.mkdir()
    return (
        SourceMapping(photos, "photos_backup"),
        SourceMapping(videos, "videos_backup"),
    )
