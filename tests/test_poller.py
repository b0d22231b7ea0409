"""Tests for the per-channel poll loop."""

import asyncio

import pytest

from accuripper.api.track_source import TrackSource
from accuripper.core.poller import ChannelPoller, PollPhase, PollState
from accuripper.exceptions import TrackFetchError
from accuripper.models.stats import RipStats
from accuripper.models.track import Channel, Track
from tests.fakes import InMemoryStore, ScriptedCatalogClient, make_track, raw_entry

CHANNEL = Channel(name="Indie Rock", id="5a1b")


class ScriptedTrackSource:
    """
    Replays a script of responses, one per fetch. A response is either a list
    of tracks or an exception to raise. Once the script runs out every fetch
    returns ``default``.
    """

    def __init__(self, script=None, default=None):
        self.script = list(script or [])
        self.default = default or []
        self.calls = 0

    async def fetch_tracks(self, channel_id: str) -> list[Track]:
        self.calls += 1
        if self.script:
            response = self.script.pop(0)
        else:
            response = self.default
        if isinstance(response, Exception):
            raise response
        return list(response)


def make_poller(source, store, stall_threshold=100, stop_event=None, stats=None):
    return ChannelPoller(
        CHANNEL,
        source,
        store,
        stop_event or asyncio.Event(),
        stall_threshold=stall_threshold,
        stats=stats,
    )


class TestPollState:
    """Evaluation bookkeeping."""

    def test_novel_tracks_reset_the_stall_count(self) -> None:
        state = PollState(CHANNEL, stall_count=7)

        assert state.evaluate(2, stall_threshold=10) is False
        assert state.stall_count == 0
        assert state.tracks_found == 2

    def test_terminates_when_threshold_reached(self) -> None:
        state = PollState(CHANNEL, stall_count=2)

        assert state.evaluate(0, stall_threshold=3) is True
        assert state.exhausted is True


class TestChannelPoller:
    """Termination and failure handling of ChannelPoller.run."""

    async def test_stalls_out_after_exactly_threshold_evaluations(self) -> None:
        """A source that never yields anything new is polled exactly 100 times."""
        known = [make_track(i) for i in range(3)]
        store = InMemoryStore(known)
        source = ScriptedTrackSource(default=known)

        state = await make_poller(source, store).run()

        assert state.evaluations == 100
        assert source.calls == 100
        assert state.exhausted is True
        assert state.phase is PollPhase.TERMINATED
        assert store.save_calls == 0

    async def test_novel_fetch_resets_stall_counter(self, memory_store: InMemoryStore) -> None:
        """Stale, stale, new, then three stale polls ends a threshold-3 loop."""
        fresh = make_track(42)
        source = ScriptedTrackSource(script=[[], [], [fresh]], default=[fresh])

        state = await make_poller(source, memory_store, stall_threshold=3).run()

        assert state.evaluations == 6
        assert state.tracks_found == 1
        assert memory_store.tracks == [fresh]

    async def test_stall_counter_restarts_at_default_threshold(
        self, memory_store: InMemoryStore
    ) -> None:
        """New, stale, stale, new, then stale polls run 100 evaluations past the last new track."""
        first, second = make_track(1), make_track(2)
        source = ScriptedTrackSource(
            script=[[first], [first], [first], [first, second]], default=[first, second]
        )

        state = await make_poller(source, memory_store).run()

        assert state.evaluations == 104
        assert source.calls == 104
        assert state.tracks_found == 2
        assert state.exhausted is True
        assert memory_store.tracks == [first, second]

    async def test_malformed_page_is_retried(self, memory_store: InMemoryStore) -> None:
        """A page whose entries cannot be decoded is a fetch failure, not a crash."""
        url = "https://catalog.example/playlist/json/5a1b/"
        malformed = [raw_entry(1, album="Album 1")]
        client = ScriptedCatalogClient({url: [malformed, malformed, [raw_entry(1)]]})
        source = TrackSource(client, "https://catalog.example/playlist/json/")

        state = await make_poller(source, memory_store, stall_threshold=2).run()

        assert state.fetch_failures == 2
        assert state.tracks_found == 1
        assert state.exhausted is True
        assert memory_store.tracks == [make_track(1)]
        assert len(client.requested) == 5

    async def test_fetch_failures_do_not_advance_the_stall_counter(
        self, memory_store: InMemoryStore
    ) -> None:
        stats = RipStats()
        failures = [TrackFetchError("boom")] * 5
        source = ScriptedTrackSource(script=failures, default=[])

        state = await make_poller(source, memory_store, stall_threshold=3, stats=stats).run()

        assert source.calls == 8
        assert state.evaluations == 3
        assert state.fetch_failures == 5
        assert stats.fetch_failures == 5

    async def test_persist_failure_keeps_the_loop_running(
        self, memory_store: InMemoryStore
    ) -> None:
        """Each failed batch is dropped and polling continues until the channel stalls."""
        memory_store.fail_save_tracks = True
        stats = RipStats()
        source = ScriptedTrackSource(
            script=[[make_track(1)], [make_track(2)], [make_track(3)]], default=[]
        )

        state = await make_poller(source, memory_store, stall_threshold=2, stats=stats).run()

        assert state.evaluations == 5
        assert state.exhausted is True
        assert stats.persist_failures == 3
        assert stats.tracks_saved == 0
        assert memory_store.tracks == []

    async def test_stop_event_set_before_start_prevents_any_fetch(
        self, memory_store: InMemoryStore
    ) -> None:
        stop_event = asyncio.Event()
        stop_event.set()
        source = ScriptedTrackSource()

        state = await make_poller(source, memory_store, stop_event=stop_event).run()

        assert source.calls == 0
        assert state.exhausted is False

    async def test_stop_event_is_observed_at_the_next_iteration(
        self, memory_store: InMemoryStore
    ) -> None:
        """The iteration in flight completes; no further fetch starts."""
        stop_event = asyncio.Event()
        stats = RipStats()

        class StoppingSource(ScriptedTrackSource):
            async def fetch_tracks(self, channel_id: str) -> list[Track]:
                tracks = await super().fetch_tracks(channel_id)
                if self.calls == 2:
                    stop_event.set()
                return tracks

        source = StoppingSource(script=[[make_track(1)], [make_track(2)]])

        state = await make_poller(source, memory_store, stop_event=stop_event, stats=stats).run()

        assert source.calls == 2
        assert len(memory_store.tracks) == 2
        assert state.exhausted is False
        assert stats.channels_stopped == 1

    async def test_lookup_error_counts_as_fetch_failure(self) -> None:
        """A store error while filtering abandons the iteration, not the loop."""
        store = InMemoryStore()
        store.fail_lookup = True
        stop_event = asyncio.Event()

        class Source(ScriptedTrackSource):
            async def fetch_tracks(self, channel_id: str) -> list[Track]:
                if self.calls == 3:
                    stop_event.set()
                return await super().fetch_tracks(channel_id)

        state = await make_poller(Source(default=[make_track(1)]), store, stop_event=stop_event).run()

        assert state.fetch_failures == 4
        assert state.evaluations == 0


@pytest.mark.parametrize("threshold", [1, 5])
async def test_threshold_is_configurable(threshold: int) -> None:
    store = InMemoryStore()
    source = ScriptedTrackSource(default=[])

    state = await make_poller(source, store, stall_threshold=threshold).run()

    assert state.evaluations == threshold
