"""
Catalog API Layer.

This package handles all communication with the remote catalog: channel
discovery, per-channel track listings, and the shared HTTP session.
"""

from .channel_source import ChannelSource
from .client import CatalogClient
from .track_source import TrackSource

__all__ = ["CatalogClient", "ChannelSource", "TrackSource"]
