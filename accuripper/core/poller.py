"""
The per-channel polling loop.

A channel's listing has no end-of-data marker, so the loop keeps fetching
until a run of consecutive fetches turns up nothing new.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from rich.markup import escape

from accuripper.exceptions import AccuRipperError
from accuripper.models.config import DEFAULT_STALL_THRESHOLD
from accuripper.models.stats import RipStats
from accuripper.models.track import Channel, Track
from accuripper.storage.base import TrackStore
from accuripper.utils.structured_logger import IngestLogger

from .novelty import NoveltyFilter

log = logging.getLogger(__name__)


class TrackFetcher(Protocol):
    async def fetch_tracks(self, channel_id: str) -> list[Track]: ...


class PollPhase(Enum):
    """States of a channel poll loop."""

    POLLING = "polling"
    EVALUATING = "evaluating"
    TERMINATED = "terminated"


@dataclass
class PollState:
    """In-memory bookkeeping for one channel's loop. Never persisted."""

    channel: Channel
    phase: PollPhase = PollPhase.POLLING
    stall_count: int = 0
    evaluations: int = 0
    fetch_failures: int = 0
    tracks_found: int = 0
    exhausted: bool = False

    def evaluate(self, novel_count: int, stall_threshold: int) -> bool:
        """
        Applies one evaluation and returns True when the loop must terminate.
        Any novel track resets the stall counter.
        """
        self.evaluations += 1
        if novel_count:
            self.stall_count = 0
            self.tracks_found += novel_count
        else:
            self.stall_count += 1
        if self.stall_count >= stall_threshold:
            self.exhausted = True
            return True
        return False


class ChannelPoller:
    """Drives the POLLING → EVALUATING → (POLLING | TERMINATED) loop for one channel."""

    def __init__(
        self,
        channel: Channel,
        track_source: TrackFetcher,
        store: TrackStore,
        stop_event: asyncio.Event,
        stall_threshold: int = DEFAULT_STALL_THRESHOLD,
        novelty: NoveltyFilter | None = None,
        stats: RipStats | None = None,
        logger: logging.Logger | None = None,
        events: IngestLogger | None = None,
    ):
        self.channel = channel
        self.track_source = track_source
        self.store = store
        self.stop_event = stop_event
        self.stall_threshold = stall_threshold
        self.novelty = novelty or NoveltyFilter(store)
        self.stats = stats or RipStats()
        self.log = logger or log
        self.events = events

    @property
    def label(self) -> str:
        return f"{self.channel.id} - {escape(self.channel.name)}"

    async def _fetch_novel(self, state: PollState) -> list[Track] | None:
        """Fetches and filters one page. Returns None when the iteration failed."""
        try:
            candidates = await self.track_source.fetch_tracks(self.channel.id)
            return await self.novelty.filter_new(candidates)
        except AccuRipperError as e:
            state.fetch_failures += 1
            await self.stats.record_fetch_failure()
            self.log.warning(f"[yellow]Fetch failed for channel {self.label}: {e}[/yellow]")
            if self.events:
                self.events.fetch_failed(self.channel.id, str(e), state.stall_count)
            return None

    async def _persist(self, tracks: list[Track]) -> None:
        """Saves a batch. A failure drops the batch; the loop keeps going."""
        try:
            await self.store.save_tracks(*tracks)
        except AccuRipperError as e:
            await self.stats.record_persist_failure()
            self.log.error(
                f"[red]✗ Could not save {len(tracks)} tracks for channel {self.label}: {e}[/red]"
            )
            if self.events:
                self.events.persist_failed(self.channel.id, len(tracks), str(e))
            return
        await self.stats.record_saved(len(tracks))
        self.log.debug(f"Fetched {len(tracks)} new tracks for channel {self.label}")
        if self.events:
            self.events.tracks_saved(self.channel.id, len(tracks))

    async def run(self) -> PollState:
        """Polls until the stall threshold is reached or the stop signal is set."""
        state = PollState(self.channel)
        self.log.info(f"Started fetching tracks for channel {self.label}")
        if self.events:
            self.events.poll_started(self.channel.id, self.channel.name)

        while state.phase is not PollPhase.TERMINATED:
            if self.stop_event.is_set():
                state.phase = PollPhase.TERMINATED
                break

            novel = await self._fetch_novel(state)
            if novel is None:
                # Retry at once; yield so a failing source can't starve other loops.
                await asyncio.sleep(0)
                continue

            state.phase = PollPhase.EVALUATING
            if state.evaluate(len(novel), self.stall_threshold):
                state.phase = PollPhase.TERMINATED
                break
            if novel:
                await self._persist(novel)
            state.phase = PollPhase.POLLING

        await self.stats.record_finished(state.exhausted)
        self.log.info(
            f"Exit fetching tracks for channel {self.label} "
            f"({state.tracks_found} new tracks, {state.evaluations} polls)"
        )
        if self.events:
            self.events.poll_finished(
                self.channel.id, state.exhausted, state.evaluations, state.tracks_found
            )
        return state
