"""
Handles the download of a single track, from path resolution to the bytes on disk.
"""

import asyncio
import logging
from contextlib import suppress
from pathlib import Path

from rich.markup import escape

from accuripper.exceptions import AccuRipperError, ByteSourceError
from accuripper.media.downloader import ByteSource, ByteStream, write_stream
from accuripper.models.stats import DownloadStats
from accuripper.models.track import Track
from accuripper.utils.path import build_track_path, create_dir
from accuripper.utils.structured_logger import DownloadLogger

log = logging.getLogger(__name__)


class TrackDownloader:
    """
    Downloads one track to its deterministic path.

    An existing file at that path means the track is done: it is never
    re-fetched, verified or overwritten. The destination is only created once
    a source stream is open, so a track whose links both fail leaves nothing
    behind.
    """

    def __init__(
        self,
        byte_source: ByteSource,
        downloads_dir: Path,
        stats: DownloadStats | None = None,
        logger: logging.Logger | None = None,
        events: DownloadLogger | None = None,
    ):
        self.byte_source = byte_source
        self.downloads_dir = Path(downloads_dir)
        self.stats = stats or DownloadStats()
        self.log = logger or log
        self.events = events

    async def _open_stream(self, track: Track) -> tuple[ByteStream, str, bool] | None:
        """Opens the primary link, falling back to the secondary one."""
        try:
            return await self.byte_source.open(track.primary_link), track.primary_link, False
        except ByteSourceError as primary_error:
            self.log.debug(f"Primary link failed, trying secondary: {primary_error}")
        try:
            return (
                await self.byte_source.open(track.secondary_link),
                track.secondary_link,
                True,
            )
        except ByteSourceError as e:
            self.log.error(f"[red]  ✗ Failed:[/] {escape(track.title)} ({e})")
            return None

    @staticmethod
    async def _discard_partial(path: Path) -> None:
        with suppress(OSError):
            await asyncio.to_thread(path.unlink, True)

    async def download(self, track: Track, channel_name: str | None = None) -> Path | None:
        """
        Downloads ``track``. Returns the written path, or None when the track
        was skipped or abandoned.
        """
        path = build_track_path(self.downloads_dir, track, channel_name)
        if await asyncio.to_thread(path.exists):
            await self.stats.record_skipped()
            self.log.info(
                f"  [yellow]○ Skipping:[/] [dim]{escape(path.name)}[/dim] (already exists)"
            )
            if self.events:
                self.events.track_skipped(str(path))
            return None

        try:
            await asyncio.to_thread(create_dir, path.parent)
        except OSError as e:
            await self.stats.record_failed()
            self.log.error(f"[red]  ✗ Could not create {escape(str(path.parent))}: {e}[/red]")
            return None

        opened = await self._open_stream(track)
        if opened is None:
            await self.stats.record_failed()
            if self.events:
                self.events.track_failed(str(path), "all links failed")
            return None

        stream, link, fallback = opened
        try:
            size = await write_stream(stream, path)
        except (AccuRipperError, OSError) as e:
            await self._discard_partial(path)
            await self.stats.record_failed()
            self.log.error(f"[red]  ✗ Failed:[/] {escape(path.name)} ({e})")
            if self.events:
                self.events.track_failed(str(path), str(e))
            return None
        except asyncio.CancelledError:
            await self._discard_partial(path)
            raise
        finally:
            await stream.close()

        await self.stats.record_downloaded(size, fallback=fallback)
        self.log.info(f"  [green]✓ Saved[/] [dim]{escape(str(path))}[/dim]")
        if self.events:
            self.events.track_downloaded(str(path), size, link, fallback)
        return path
