"""
Fetches the current track listing of a channel from the playlist JSON endpoint.
"""

import asyncio
import logging
from typing import Any

import aiohttp

from accuripper.exceptions import TrackFetchError
from accuripper.models.track import Track

from .client import CatalogClient

log = logging.getLogger(__name__)

MEDIA_EXTENSION = ".m4a"


def _parse_year(raw: Any) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 0


def raw_to_track(raw: dict[str, Any], channel_id: str) -> Track:
    """
    Converts one raw playlist entry to a Track.

    Links are built from the two delivery base URLs plus the shared file name
    and the fixed media extension.
    """
    album = raw.get("album") or {}
    file_name = raw.get("fn") or ""
    try:
        duration = int(float(raw.get("duration") or 0))
    except (TypeError, ValueError):
        duration = 0
    return Track(
        channel=channel_id,
        artist=raw.get("track_artist") or "",
        album=album.get("title") or "",
        title=raw.get("title") or "",
        year=_parse_year(album.get("year")),
        duration=duration,
        primary_link=f"{raw.get('primary') or ''}{file_name}{MEDIA_EXTENSION}",
        secondary_link=f"{raw.get('secondary') or ''}{file_name}{MEDIA_EXTENSION}",
    )


def parse_tracks(payload: Any, channel_id: str) -> list[Track]:
    """
    Decodes a playlist response; entries without a file name are dropped.

    Any other malformed entry fails the whole page with TrackFetchError so
    the poll loop retries it.
    """
    if not isinstance(payload, list):
        raise TrackFetchError(
            f"fetch tracks: expected a JSON list, got {type(payload).__name__}"
        )
    tracks = []
    for raw in payload:
        if not isinstance(raw, dict) or not raw.get("fn"):
            log.debug(f"Skipping playlist entry without a file name: {raw!r}")
            continue
        try:
            tracks.append(raw_to_track(raw, channel_id))
        except (AttributeError, TypeError, ValueError) as e:
            raise TrackFetchError(
                f"fetch tracks for channel {channel_id}: malformed entry {raw.get('fn')!r}: {e}"
            ) from e
    return tracks


class TrackSource:
    """Lists the tracks currently visible on a channel."""

    def __init__(self, client: CatalogClient, playlist_url: str):
        self.client = client
        self.playlist_url = playlist_url

    async def fetch_tracks(self, channel_id: str) -> list[Track]:
        url = f"{self.playlist_url}{channel_id}/"
        try:
            payload = await self.client.fetch_json(url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TrackFetchError(f"fetch tracks for channel {channel_id}: {e}") from e
        return parse_tracks(payload, channel_id)
