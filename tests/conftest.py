"""
Shared fixtures for all dirls tests.

This module provides builders for configuration snapshots, fabricated stat
results and file records, and the recording test doubles used across the
core, adapter and ui test packages.
"""

import io
import stat
from types import SimpleNamespace

import pytest

from core.config import ListingConfig
from core.models import FileRecord
from ui.diagnostics import RecordingDiagnostics
from ui.signals import NoOpSignalCoordinator


def fake_stat(
    mode: int = stat.S_IFREG | 0o644,
    size: int = 0,
    mtime_ns: int = 0,
    ino: int = 1,
    dev: int = 1,
    nlink: int = 1,
    uid: int = 0,
    gid: int = 0,
    blocks: int = 0,
    rdev: int = 0,
) -> SimpleNamespace:
    """Build an object with the attributes of os.stat_result that dirls reads."""
    return SimpleNamespace(
        st_mode=mode,
        st_size=size,
        st_ino=ino,
        st_dev=dev,
        st_nlink=nlink,
        st_uid=uid,
        st_gid=gid,
        st_blocks=blocks,
        st_rdev=rdev,
        st_mtime_ns=mtime_ns,
        st_ctime_ns=mtime_ns,
        st_atime_ns=mtime_ns,
    )


@pytest.fixture
def make_stat():
    """Factory for fabricated stat results."""
    return fake_stat


@pytest.fixture
def make_record():
    """Factory for FileRecords with fetched metadata."""

    def _factory(name: str, **stat_fields) -> FileRecord:
        record = FileRecord(name)
        record.confirm(fake_stat(**stat_fields))
        return record

    return _factory


@pytest.fixture
def make_config():
    """Factory for ListingConfig snapshots with keyword overrides."""

    def _factory(**overrides) -> ListingConfig:
        return ListingConfig(**overrides)

    return _factory


@pytest.fixture
def diagnostics():
    """Diagnostics double that records every message."""
    return RecordingDiagnostics()


@pytest.fixture
def signals():
    """Signal coordinator double that only counts calls."""
    return NoOpSignalCoordinator()


@pytest.fixture
def output():
    """In-memory output stream."""
    return io.StringIO()
