"""
The ingestion entry point: discovers channels and polls all of them concurrently.
"""

import asyncio
import logging
from typing import Protocol

from rich.markup import escape

from accuripper.models.config import DEFAULT_STALL_THRESHOLD
from accuripper.models.stats import RipStats
from accuripper.models.track import Channel
from accuripper.storage.base import TrackStore
from accuripper.utils.structured_logger import IngestLogger

from .novelty import NoveltyFilter
from .poller import ChannelPoller, TrackFetcher

log = logging.getLogger(__name__)


class ChannelFetcher(Protocol):
    async def fetch_channels(self) -> list[Channel]: ...


class Ripper:
    """
    Orchestrates one ingestion run.

    Fetching the channel list and registering the channels are fatal steps:
    their errors propagate to the caller. Everything after that is confined to
    the owning channel's loop.
    """

    def __init__(
        self,
        channel_source: ChannelFetcher,
        track_source: TrackFetcher,
        store: TrackStore,
        stop_event: asyncio.Event | None = None,
        stall_threshold: int = DEFAULT_STALL_THRESHOLD,
        logger: logging.Logger | None = None,
        events: IngestLogger | None = None,
    ):
        self.channel_source = channel_source
        self.track_source = track_source
        self.store = store
        self.stop_event = stop_event or asyncio.Event()
        self.stall_threshold = stall_threshold
        self.log = logger or log
        self.events = events

    async def rip(self) -> RipStats:
        """Runs discovery, then one poll loop per channel; returns when all have ended."""
        stats = RipStats()
        channels = await self.channel_source.fetch_channels()
        stats.channels_discovered = len(channels)
        if not channels:
            self.log.warning("[yellow]No channels found. Nothing to do.[/yellow]")
            return stats

        self.log.info(f"Discovered {len(channels)} channels.")
        if self.events:
            self.events.channels_discovered(
                getattr(self.channel_source, "category_url", ""), len(channels)
            )

        await self.store.save_channels(*channels)

        novelty = NoveltyFilter(self.store)
        await asyncio.gather(
            *(self._poll_channel(channel, novelty, stats) for channel in channels)
        )
        return stats

    async def _poll_channel(
        self, channel: Channel, novelty: NoveltyFilter, stats: RipStats
    ) -> None:
        poller = ChannelPoller(
            channel,
            self.track_source,
            self.store,
            self.stop_event,
            stall_threshold=self.stall_threshold,
            novelty=novelty,
            stats=stats,
            logger=self.log,
            events=self.events,
        )
        try:
            await poller.run()
        except Exception as e:
            self.log.error(
                f"[red]✗ Poll loop for channel {channel.id} - {escape(channel.name)}"
                f" crashed: {e}[/red]",
                exc_info=self.log.getEffectiveLevel() == logging.DEBUG,
            )
