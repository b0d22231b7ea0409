"""Tests for the SQLite track store."""

import asyncio
import sqlite3

import pytest

from accuripper.exceptions import StoreError, TrackNotFoundError
from accuripper.models.track import Channel
from accuripper.storage.sqlite_store import SqliteTrackStore
from tests.fakes import make_track

CHANNEL = Channel(name="Indie Rock", id="5a1b")


@pytest.fixture
async def store(sqlite_store: SqliteTrackStore) -> SqliteTrackStore:
    await sqlite_store.save_channels(CHANNEL)
    return sqlite_store


class TestSchema:
    """Schema creation."""

    async def test_create_is_repeatable(self, sqlite_store: SqliteTrackStore) -> None:
        await sqlite_store.create()
        assert await sqlite_store.count_tracks() == 0

    async def test_derived_indexes_exist(self, sqlite_store: SqliteTrackStore) -> None:
        with sqlite3.connect(sqlite_store.db_path) as conn:
            names = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
        assert {
            "idx_track_channel",
            "idx_track_artist",
            "idx_track_artist_album",
            "idx_track_year",
            "idx_track_artist_year",
        } <= names


class TestSaveTracks:
    """Batch persistence semantics."""

    async def test_batch_is_all_or_nothing(self, store: SqliteTrackStore) -> None:
        """A batch of five whose third row is rejected leaves nothing behind."""
        batch = [make_track(i) for i in range(5)]
        batch[2] = make_track(2, channel="unregistered")

        with pytest.raises(StoreError):
            await store.save_tracks(*batch)

        assert await store.count_tracks() == 0

    async def test_duplicate_links_are_silent_no_ops(self, store: SqliteTrackStore) -> None:
        batch = [make_track(i) for i in range(5)]

        await store.save_tracks(*batch)
        await store.save_tracks(*batch)
        await store.save_tracks(make_track(0, primary_link="https://p.example/fresh.m4a"))

        assert await store.count_tracks() == 5

    async def test_empty_batch_is_a_no_op(self, store: SqliteTrackStore) -> None:
        await store.save_tracks()
        assert await store.count_tracks() == 0

    async def test_concurrent_writers_all_succeed(self, store: SqliteTrackStore) -> None:
        batches = [[make_track(b * 10 + i) for i in range(10)] for b in range(8)]

        await asyncio.gather(*(store.save_tracks(*batch) for batch in batches))

        assert await store.count_tracks() == 80


class TestLookups:
    """Point lookups and scans."""

    async def test_lookup_by_either_link(self, store: SqliteTrackStore) -> None:
        track = make_track(7)
        await store.save_tracks(track)

        assert await store.get_track_by_link(track.primary_link) == track
        assert await store.get_track_by_link(track.secondary_link) == track

    async def test_lookup_miss_raises_not_found(self, store: SqliteTrackStore) -> None:
        with pytest.raises(TrackNotFoundError):
            await store.get_track_by_link("https://p.example/nope.m4a")

    async def test_iter_tracks_pages_through_everything(self, store: SqliteTrackStore) -> None:
        tracks = [make_track(i) for i in range(7)]
        await store.save_tracks(*tracks)
        store.SCAN_PAGE_SIZE = 3

        scanned = [track async for track in store.iter_tracks()]

        assert scanned == tracks

    async def test_channels_keep_first_name(self, store: SqliteTrackStore) -> None:
        await store.save_channels(
            Channel(name="Renamed", id="5a1b"), Channel(name="Shoegaze", id="6c2d")
        )

        assert await store.get_channels() == [CHANNEL, Channel(name="Shoegaze", id="6c2d")]

    async def test_unwritable_path_raises_store_error(self, tmp_path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = SqliteTrackStore(blocker / "tracks.sqlite")

        with pytest.raises(StoreError):
            await store.create()

    async def test_vacuum_keeps_data(self, store: SqliteTrackStore) -> None:
        await store.save_tracks(make_track(1))
        await store.vacuum()
        assert await store.count_tracks() == 1
