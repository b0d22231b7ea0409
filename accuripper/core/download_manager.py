"""
The retrieval entry point: scans every stored track and downloads the missing ones.
"""

import asyncio
import logging
from pathlib import Path

from accuripper.exceptions import StoreError
from accuripper.media.downloader import ByteSource
from accuripper.models.config import DEFAULT_MAX_WORKERS
from accuripper.models.stats import DownloadStats
from accuripper.models.track import Track
from accuripper.storage.base import TrackStore
from accuripper.utils.structured_logger import DownloadLogger
from accuripper.utils.worker_pool import WorkerPool

from .track_downloader import TrackDownloader

log = logging.getLogger(__name__)


class DownloadManager:
    """Orchestrates a full download pass over the track store."""

    def __init__(
        self,
        store: TrackStore,
        byte_source: ByteSource,
        downloads_dir: Path,
        max_workers: int = DEFAULT_MAX_WORKERS,
        stop_event: asyncio.Event | None = None,
        logger: logging.Logger | None = None,
        events: DownloadLogger | None = None,
    ):
        self.store = store
        self.max_workers = max_workers
        self.stop_event = stop_event or asyncio.Event()
        self.log = logger or log
        self.stats = DownloadStats()
        self.track_downloader = TrackDownloader(
            byte_source,
            Path(downloads_dir),
            stats=self.stats,
            logger=self.log,
            events=events,
        )
        self._channel_names: dict[str, str] = {}

    async def _load_channel_names(self) -> None:
        channels = await self.store.get_channels()
        self._channel_names = {ch.id: ch.name for ch in channels}
        self.log.debug(f"Resolved {len(self._channel_names)} channel names.")

    async def _download(self, track: Track) -> None:
        await self.track_downloader.download(
            track, self._channel_names.get(track.channel)
        )

    async def download_all(self) -> DownloadStats:
        """
        Downloads every stored track that is not already on disk.

        Submission blocks while all workers are busy. A failure of the store
        scan stops further submissions; the downloads already running are
        allowed to finish before the error is re-raised.
        """
        await self._load_channel_names()

        scan_error: StoreError | None = None
        pool = WorkerPool(self.max_workers, logger=self.log)
        async with pool:
            try:
                async for track in self.store.iter_tracks():
                    if self.stop_event.is_set():
                        self.log.warning(
                            "[yellow]Stop requested. No more downloads will be started.[/yellow]"
                        )
                        break
                    self.stats.tracks_scanned += 1
                    await pool.submit(self._download, track)
            except StoreError as e:
                scan_error = e
                self.log.error(f"[red]✗ Track scan failed: {e}[/red]")

        self.stats.peak_in_flight = pool.peak_in_flight
        if scan_error is not None:
            raise scan_error
        return self.stats
