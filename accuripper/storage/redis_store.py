"""
Key-value metadata store backed by Redis.

Tracks are stored as JSON documents in one hash, registered under both of
their links. Batches are written through a WATCH-guarded MULTI/EXEC pipeline,
so a batch and its derived index sets become visible together and a track
sharing any link with a stored one is skipped whole.
"""

import json
import logging
from collections.abc import AsyncIterator

import redis.asyncio as aioredis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

from accuripper.exceptions import StoreError, TrackNotFoundError
from accuripper.models.track import Channel, Track

from .base import TrackStore

log = logging.getLogger(__name__)

TRACKS_KEY = "tracks"
CHANNELS_KEY = "channels"
PRIMARY_LINKS_KEY = "track:primary_links"
SECONDARY_LINKS_KEY = "track:secondary_links"


def index_keys(track: Track) -> list[str]:
    """Derived index sets a track's primary link is filed under."""
    return [
        f"channel:tracks:{track.channel}",
        f"artist:tracks:{track.artist}",
        f"artist:album:tracks:{track.artist}:{track.album}",
        f"year:tracks:{track.year}",
        f"artist:year:tracks:{track.artist}:{track.year}",
    ]


def create_redis_client(
    host: str = "localhost", port: int = 6379, db: int = 0
) -> aioredis.Redis:
    """Builds a client with bounded retries and socket deadlines."""
    return aioredis.Redis(
        host=host,
        port=port,
        db=db,
        decode_responses=True,
        socket_connect_timeout=10,
        socket_timeout=5,
        retry=Retry(ExponentialBackoff(cap=2.0, base=0.05), retries=3),
        retry_on_timeout=True,
        max_connections=32,
    )


class RedisTrackStore(TrackStore):
    """A Redis store for channels and tracks with pipelined batch writes."""

    SCAN_COUNT = 100

    def __init__(self, client: aioredis.Redis):
        self.client = client

    async def create(self) -> None:
        """Checks connectivity; Redis needs no schema."""
        try:
            await self.client.ping()
        except RedisError as e:
            raise StoreError(f"redis: ping: {e}") from e

    async def close(self) -> None:
        try:
            await self.client.aclose()
        except RedisError as e:
            log.warning(f"Error while closing redis client: {e}")

    async def save_channels(self, *channels: Channel) -> None:
        if not channels:
            return
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                for ch in channels:
                    pipe.hsetnx(CHANNELS_KEY, ch.id, ch.name)
                await pipe.execute()
        except RedisError as e:
            raise StoreError(f"redis: save channels: {e}") from e

    async def _queue_new_tracks(self, pipe, tracks: tuple[Track, ...]) -> int:
        """
        Runs inside a WATCH on the tracks hash: looks up every link of the
        batch, then queues only the tracks whose links are all unknown. A
        track sharing either link with a stored one, or with an earlier track
        of the same batch, is skipped whole.
        """
        links = [link for track in tracks for link in (track.primary_link, track.secondary_link)]
        stored = await pipe.hmget(TRACKS_KEY, links)
        taken = {link for link, payload in zip(links, stored) if payload is not None}

        pipe.multi()
        queued = 0
        for track in tracks:
            if track.primary_link in taken or track.secondary_link in taken:
                continue
            taken.update((track.primary_link, track.secondary_link))
            payload = json.dumps(track.to_dict())
            pipe.hset(
                TRACKS_KEY,
                mapping={track.primary_link: payload, track.secondary_link: payload},
            )
            pipe.sadd(PRIMARY_LINKS_KEY, track.primary_link)
            pipe.sadd(SECONDARY_LINKS_KEY, track.secondary_link)
            for key in index_keys(track):
                pipe.sadd(key, track.primary_link)
            queued += 1
        return queued

    async def save_tracks(self, *tracks: Track) -> None:
        if not tracks:
            return
        try:
            # Retried from the lookup whenever a concurrent writer touches the hash.
            queued = await self.client.transaction(
                lambda pipe: self._queue_new_tracks(pipe, tracks),
                TRACKS_KEY,
                value_from_callable=True,
                watch_delay=0.01,
            )
        except RedisError as e:
            raise StoreError(f"redis: save tracks: {e}") from e
        log.debug(f"Saved {queued} of {len(tracks)} tracks; the rest were already known.")

    @staticmethod
    def _decode(link: str, payload: str) -> Track:
        try:
            return Track.from_dict(json.loads(payload))
        except (ValueError, KeyError, TypeError) as e:
            raise StoreError(f"redis: corrupt track record for {link!r}: {e}") from e

    async def get_track_by_link(self, link: str) -> Track:
        try:
            payload = await self.client.hget(TRACKS_KEY, link)
        except RedisError as e:
            raise StoreError(f"redis: get track by link: {e}") from e
        if payload is None:
            raise TrackNotFoundError(f"no track stored under link {link!r}")
        return self._decode(link, payload)

    async def iter_tracks(self) -> AsyncIterator[Track]:
        """
        Walks the primary-link set with SSCAN until the cursor wraps to 0.
        SSCAN may return a member more than once; the downloader's
        skip-if-exists check makes repeats harmless.
        """
        cursor = 0
        while True:
            try:
                cursor, links = await self.client.sscan(
                    PRIMARY_LINKS_KEY, cursor=cursor, count=self.SCAN_COUNT
                )
                payloads = await self.client.hmget(TRACKS_KEY, links) if links else []
            except RedisError as e:
                raise StoreError(f"redis: get all tracks: {e}") from e
            for link, payload in zip(links, payloads):
                if payload is None:
                    raise StoreError(f"redis: dangling primary link {link!r}")
                yield self._decode(link, payload)
            if cursor == 0:
                return

    async def get_channels(self) -> list[Channel]:
        try:
            raw = await self.client.hgetall(CHANNELS_KEY)
        except RedisError as e:
            raise StoreError(f"redis: get channels: {e}") from e
        return [Channel(name=name, id=channel_id) for channel_id, name in raw.items()]

    async def count_tracks(self) -> int:
        try:
            return await self.client.scard(PRIMARY_LINKS_KEY)
        except RedisError as e:
            raise StoreError(f"redis: count tracks: {e}") from e

    async def get_index(self, key: str) -> set[str]:
        """Returns the primary links filed under a derived index key."""
        try:
            return await self.client.smembers(key)
        except RedisError as e:
            raise StoreError(f"redis: get index: {e}") from e
