"""
Dataclasses for tracking ingestion and download session statistics.
"""

import asyncio
import time
from dataclasses import dataclass, field


@dataclass
class RipStats:
    """Counters for one ingestion run, shared by all channel poll loops."""

    channels_discovered: int = 0
    channels_exhausted: int = 0
    channels_stopped: int = 0
    tracks_saved: int = 0
    fetch_failures: int = 0
    persist_failures: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def record_saved(self, count: int) -> None:
        async with self._lock:
            self.tracks_saved += count

    async def record_fetch_failure(self) -> None:
        async with self._lock:
            self.fetch_failures += 1

    async def record_persist_failure(self) -> None:
        async with self._lock:
            self.persist_failures += 1

    async def record_finished(self, exhausted: bool) -> None:
        """Counts a channel loop that ended, either stalled out or stopped."""
        async with self._lock:
            if exhausted:
                self.channels_exhausted += 1
            else:
                self.channels_stopped += 1

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


@dataclass
class DownloadStats:
    """Counters for one download session."""

    tracks_scanned: int = 0
    tracks_downloaded: int = 0
    tracks_skipped_exists: int = 0
    tracks_failed: int = 0
    total_size_downloaded: int = 0
    used_fallback: int = 0
    peak_in_flight: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def record_downloaded(self, size: int, fallback: bool = False) -> None:
        async with self._lock:
            self.tracks_downloaded += 1
            self.total_size_downloaded += size
            if fallback:
                self.used_fallback += 1

    async def record_skipped(self) -> None:
        async with self._lock:
            self.tracks_skipped_exists += 1

    async def record_failed(self) -> None:
        async with self._lock:
            self.tracks_failed += 1

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at
