"""
Core records shared by the ingestion and retrieval sides.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class Channel:
    """A discoverable content bucket, keyed by its opaque catalog id."""

    name: str
    id: str


@dataclass(frozen=True)
class Track:
    """
    One piece of media discovered on one channel.

    Both links are unique keys in the store: a track can be looked up by
    either of them.
    """

    channel: str
    artist: str
    album: str
    title: str
    year: int
    duration: int
    primary_link: str
    secondary_link: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Track":
        return cls(
            channel=str(data["channel"]),
            artist=str(data.get("artist", "")),
            album=str(data.get("album", "")),
            title=str(data.get("title", "")),
            year=int(data.get("year") or 0),
            duration=int(data.get("duration") or 0),
            primary_link=str(data["primary_link"]),
            secondary_link=str(data["secondary_link"]),
        )
