"""
The storage capability shared by the relational and key-value backends.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from accuripper.models.track import Channel, Track


class TrackStore(ABC):
    """
    Durable keyed storage for tracks and channels.

    Every backend must honour the same contracts:

    - ``save_tracks`` is all-or-nothing, and saving a track whose link is
      already known is a silent no-op.
    - ``get_track_by_link`` resolves either link of a stored track and raises
      ``TrackNotFoundError`` on a miss; any other failure is a ``StoreError``.
    - ``iter_tracks`` enumerates every stored track at least once per scan and
      is restartable only from the beginning.
    """

    @abstractmethod
    async def create(self) -> None:
        """Prepares the backing storage (schema, connectivity check)."""

    @abstractmethod
    async def save_channels(self, *channels: Channel) -> None:
        """Upserts channels; re-saving a known id is a no-op."""

    @abstractmethod
    async def save_tracks(self, *tracks: Track) -> None:
        """Writes a batch of tracks and their derived indexes atomically."""

    @abstractmethod
    async def get_track_by_link(self, link: str) -> Track:
        """Returns the track registered under a primary or secondary link."""

    @abstractmethod
    def iter_tracks(self) -> AsyncIterator[Track]:
        """Yields every stored track, in no particular order."""

    @abstractmethod
    async def get_channels(self) -> list[Channel]:
        """Returns every registered channel."""

    @abstractmethod
    async def count_tracks(self) -> int:
        """Returns the number of stored tracks."""

    async def close(self) -> None:
        """Releases backend resources."""

    async def __aenter__(self) -> "TrackStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
