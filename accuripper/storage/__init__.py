"""
Storage Layer.

This package handles all data persistence: the configuration file and the
metadata store, with interchangeable relational (SQLite) and key-value
(Redis) backends behind the ``TrackStore`` interface.
"""

from pathlib import Path

from accuripper.models.config import RipperConfig

from .base import TrackStore
from .config_manager import ConfigManager
from .redis_store import RedisTrackStore, create_redis_client
from .sqlite_store import SqliteTrackStore


def open_store(config: RipperConfig) -> TrackStore:
    """Builds the store selected by the configuration. Call ``create()`` before use."""
    if config.backend == "redis":
        client = create_redis_client(config.redis_host, config.redis_port, config.redis_db)
        return RedisTrackStore(client)
    return SqliteTrackStore(Path(config.sqlite_path))


__all__ = [
    "ConfigManager",
    "RedisTrackStore",
    "SqliteTrackStore",
    "TrackStore",
    "open_store",
]
