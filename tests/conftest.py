"""Test configuration and fixtures"""

import tempfile
from pathlib import Path

import pytest

from playlist_importer.playlist.models import Track
from playlist_importer.reconcile.mapping import IdMappingStore
from playlist_importer.session.importer import ImportSession

from helpers import FakeCatalog, InMemoryMappingBackend, ManualRunner, xspf


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def backend():
    return InMemoryMappingBackend()


@pytest.fixture
def id_mapping(backend):
    return IdMappingStore(backend)


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def runner():
    return ManualRunner()


@pytest.fixture
def exported():
    return []


@pytest.fixture
def session(id_mapping, runner, exported):
    return ImportSession(id_mapping, runner, save_file=exported.append)


@pytest.fixture
def track_a():
    return Track(artist="A", title="X", duration=200000)


@pytest.fixture
def track_b():
    return Track(artist="B", title="Y", duration=180000)


@pytest.fixture
def two_track_playlist():
    return xspf(
        {"creator": "A", "title": "X", "duration": "200000"},
        {"creator": "B", "title": "Y", "duration": "180000"},
    )
