"""Shared fixtures for the accuripper test suite."""

import pytest

from accuripper.storage.sqlite_store import SqliteTrackStore
from tests.fakes import InMemoryStore


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
async def sqlite_store(tmp_path) -> SqliteTrackStore:
    store = SqliteTrackStore(tmp_path / "tracks.sqlite")
    await store.create()
    return store
