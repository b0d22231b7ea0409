"""
Relational metadata store backed by SQLite.

Blocking sqlite3 calls run in worker threads; each call opens its own
connection, and write batches take the database write lock up front so
concurrent channel loops queue on the busy timeout instead of failing.
"""

import asyncio
import logging
import sqlite3
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from pathlib import Path

from accuripper.exceptions import StoreError, TrackNotFoundError
from accuripper.models.track import Channel, Track

from .base import TrackStore

log = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS channel (
        id INTEGER PRIMARY KEY,
        name TEXT NOT NULL,
        data_id TEXT NOT NULL UNIQUE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS track (
        id INTEGER PRIMARY KEY,
        channel TEXT NOT NULL REFERENCES channel (data_id),
        artist TEXT NOT NULL,
        album TEXT NOT NULL,
        title TEXT NOT NULL,
        duration INTEGER NOT NULL,
        year INTEGER NOT NULL,
        primary_link TEXT NOT NULL UNIQUE,
        secondary_link TEXT NOT NULL UNIQUE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_track_channel ON track(channel);",
    "CREATE INDEX IF NOT EXISTS idx_track_artist ON track(artist);",
    "CREATE INDEX IF NOT EXISTS idx_track_artist_album ON track(artist, album);",
    "CREATE INDEX IF NOT EXISTS idx_track_year ON track(year);",
    "CREATE INDEX IF NOT EXISTS idx_track_artist_year ON track(artist, year);",
)

_TRACK_COLUMNS = (
    "channel, artist, album, title, duration, year, primary_link, secondary_link"
)


def _row_to_track(row: tuple) -> Track:
    channel, artist, album, title, duration, year, primary, secondary = row
    return Track(
        channel=channel,
        artist=artist,
        album=album,
        title=title,
        year=year,
        duration=duration,
        primary_link=primary,
        secondary_link=secondary,
    )


class SqliteTrackStore(TrackStore):
    """
    A thread-safe SQLite store for channels and tracks with per-call
    connections and transactional batch writes.
    """

    SCAN_PAGE_SIZE = 500

    def __init__(self, db_path: Path, pool_size: int = 5, busy_timeout: float = 30):
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout
        self._connection_semaphore = asyncio.Semaphore(pool_size)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Opens a connection with the PRAGMAs every call relies on."""
        conn = sqlite3.connect(
            self.db_path,
            timeout=self.busy_timeout,
            check_same_thread=False,
            isolation_level=None,
        )
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA foreign_keys=ON;")
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yields a connection inside BEGIN IMMEDIATE; commits or rolls back."""
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK;")
                raise
            conn.execute("COMMIT;")

    async def _run_in_executor(self, func, *args):
        """Runs a synchronous database function within the connection pool semaphore."""
        async with self._connection_semaphore:
            try:
                return await asyncio.to_thread(func, *args)
            except (sqlite3.Error, OSError) as e:
                raise StoreError(f"sqlite: {func.__name__.strip('_')}: {e}") from e

    def _create_sync(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    async def create(self) -> None:
        """Creates the tables and derived indexes if they don't exist."""
        await self._run_in_executor(self._create_sync)
        log.debug(f"SQLite store ready at '{self.db_path}'.")

    def _save_channels_sync(self, channels: tuple[Channel, ...]) -> None:
        with self._transaction() as conn:
            conn.executemany(
                "INSERT INTO channel (name, data_id) VALUES (?, ?)"
                " ON CONFLICT DO NOTHING",
                [(ch.name, ch.id) for ch in channels],
            )

    async def save_channels(self, *channels: Channel) -> None:
        if channels:
            await self._run_in_executor(self._save_channels_sync, channels)

    def _insert_tracks(self, conn: sqlite3.Connection, tracks: tuple[Track, ...]) -> None:
        """Inserts tracks on the given transaction; duplicate links are skipped."""
        conn.executemany(
            f"INSERT INTO track ({_TRACK_COLUMNS})"  # noqa: S608
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?) ON CONFLICT DO NOTHING",
            [
                (
                    t.channel,
                    t.artist,
                    t.album,
                    t.title,
                    t.duration,
                    t.year,
                    t.primary_link,
                    t.secondary_link,
                )
                for t in tracks
            ],
        )

    def _save_tracks_sync(self, tracks: tuple[Track, ...]) -> None:
        with self._transaction() as conn:
            self._insert_tracks(conn, tracks)

    async def save_tracks(self, *tracks: Track) -> None:
        if tracks:
            await self._run_in_executor(self._save_tracks_sync, tracks)

    def _get_track_by_link_sync(self, link: str) -> Track | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_TRACK_COLUMNS} FROM track"  # noqa: S608
                " WHERE primary_link = ? OR secondary_link = ? LIMIT 1",
                (link, link),
            ).fetchone()
        return _row_to_track(row) if row else None

    async def get_track_by_link(self, link: str) -> Track:
        track = await self._run_in_executor(self._get_track_by_link_sync, link)
        if track is None:
            raise TrackNotFoundError(f"no track stored under link {link!r}")
        return track

    def _fetch_page_sync(self, after_id: int, limit: int) -> list[tuple[int, Track]]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, {_TRACK_COLUMNS} FROM track"  # noqa: S608
                " WHERE id > ? ORDER BY id LIMIT ?",
                (after_id, limit),
            ).fetchall()
        return [(row[0], _row_to_track(row[1:])) for row in rows]

    async def iter_tracks(self) -> AsyncIterator[Track]:
        """Pages through the track table by rowid so no connection is held across yields."""
        after_id = 0
        while True:
            page = await self._run_in_executor(
                self._fetch_page_sync, after_id, self.SCAN_PAGE_SIZE
            )
            if not page:
                return
            for _, track in page:
                yield track
            after_id = page[-1][0]

    def _get_channels_sync(self) -> list[Channel]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name, data_id FROM channel ORDER BY id"
            ).fetchall()
        return [Channel(name=name, id=data_id) for name, data_id in rows]

    async def get_channels(self) -> list[Channel]:
        return await self._run_in_executor(self._get_channels_sync)

    def _count_tracks_sync(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM track").fetchone()[0]

    async def count_tracks(self) -> int:
        return await self._run_in_executor(self._count_tracks_sync)

    def _vacuum_sync(self) -> None:
        with self._connect() as conn:
            conn.execute("VACUUM;")
            conn.execute("ANALYZE;")

    async def vacuum(self) -> None:
        """Optimizes the database file by rebuilding it."""
        await self._run_in_executor(self._vacuum_sync)
        log.info("Track database optimized successfully.")
