"""
Data Models Layer.

This package contains the records that flow through the pipeline (tracks and
channels), the validated configuration model, and session statistics.
"""

from .config import RipperConfig
from .stats import DownloadStats, RipStats
from .track import Channel, Track

__all__ = ["Channel", "DownloadStats", "RipStats", "RipperConfig", "Track"]
