"""Tests for NoveltyFilter."""

import pytest

from accuripper.core.novelty import NoveltyFilter
from accuripper.exceptions import StoreError
from tests.fakes import InMemoryStore, make_track


class TestNoveltyFilter:
    """A track is new only when neither of its links is stored."""

    async def test_unknown_tracks_are_new(self, memory_store: InMemoryStore) -> None:
        tracks = [make_track(i) for i in range(3)]

        assert await NoveltyFilter(memory_store).filter_new(tracks) == tracks

    async def test_filter_is_idempotent_after_save(self, memory_store: InMemoryStore) -> None:
        """Saving the novel set and filtering again yields nothing."""
        novelty = NoveltyFilter(memory_store)
        tracks = [make_track(i) for i in range(5)]

        novel = await novelty.filter_new(tracks)
        await memory_store.save_tracks(*novel)

        assert await novelty.filter_new(tracks) == []

    async def test_known_secondary_link_excludes_track(self) -> None:
        """A track stored under another primary but the same secondary is not new."""
        stored = make_track(1)
        store = InMemoryStore([stored])
        candidate = make_track(1, primary_link="https://p.example/other.m4a")

        assert await NoveltyFilter(store).filter_new([candidate]) == []

    async def test_known_primary_link_excludes_track(self) -> None:
        stored = make_track(1)
        store = InMemoryStore([stored])
        candidate = make_track(1, secondary_link="https://s.example/other.m4a")

        assert await NoveltyFilter(store).is_known(candidate) is True

    async def test_preserves_input_order(self) -> None:
        store = InMemoryStore([make_track(2)])
        tracks = [make_track(i) for i in (4, 2, 0, 3)]

        novel = await NoveltyFilter(store).filter_new(tracks)

        assert [t.title for t in novel] == ["Title 4", "Title 0", "Title 3"]

    async def test_store_error_aborts_the_batch(self, memory_store: InMemoryStore) -> None:
        """Only a lookup miss means 'new'; any other error propagates."""
        memory_store.fail_lookup = True

        with pytest.raises(StoreError):
            await NoveltyFilter(memory_store).filter_new([make_track(1)])
