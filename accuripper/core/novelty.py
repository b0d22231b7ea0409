"""
Filters fetched tracks down to the ones the store has never seen.
"""

import logging

from accuripper.exceptions import TrackNotFoundError
from accuripper.models.track import Track
from accuripper.storage.base import TrackStore

log = logging.getLogger(__name__)


class NoveltyFilter:
    """
    A track is novel iff neither its primary nor its secondary link resolves
    to a stored record. Store errors other than a miss abort the whole batch.
    """

    def __init__(self, store: TrackStore):
        self.store = store

    async def _link_exists(self, link: str) -> bool:
        try:
            await self.store.get_track_by_link(link)
        except TrackNotFoundError:
            return False
        return True

    async def is_known(self, track: Track) -> bool:
        """Checks the primary link first; the secondary is only queried on a miss."""
        if await self._link_exists(track.primary_link):
            return True
        return await self._link_exists(track.secondary_link)

    async def filter_new(self, tracks: list[Track]) -> list[Track]:
        """Returns the novel tracks, preserving input order."""
        result = []
        for track in tracks:
            if not await self.is_known(track):
                result.append(track)
        return result
