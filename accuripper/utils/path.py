"""
Utilities for building deterministic download paths.
"""

from pathlib import Path

from pathvalidate import sanitize_filename

from accuripper.models.track import Track

MEDIA_SUFFIX = ".m4a"
FIELD_SEPARATOR = "_-_"
# Leaves room for the suffix within the common 255-byte file name limit.
_MAX_STEM_BYTES = 240


def clean_component(value: str, fallback: str = "Unknown") -> str:
    """
    Makes one metadata value safe to use as a single path component.
    Path separators become underscores, so "AC/DC" stays one component.
    Other characters are only replaced where the host file system rejects
    them, so "What?" and "What_" stay distinct files on POSIX.
    """
    value = value.replace("/", "_").replace("\\", "_")
    cleaned = sanitize_filename(value, replacement_text="_", platform="auto")
    return cleaned or fallback


def _truncate_stem(stem: str) -> str:
    encoded = stem.encode("utf-8")
    if len(encoded) <= _MAX_STEM_BYTES:
        return stem
    return encoded[:_MAX_STEM_BYTES].decode("utf-8", errors="ignore")


def build_track_path(root: Path, track: Track, channel_name: str | None = None) -> Path:
    """
    Returns ``<root>/<channel>/<artist>_-_<album>_-_<year>_-_<title>.m4a``.

    The path is a pure function of the track's metadata, so it doubles as the
    idempotency key for downloads. Two tracks that differ only in a replaced
    separator, or past the byte limit of the stem, map to the same path and
    the second one is skipped as already downloaded.
    """
    channel_dir = clean_component(channel_name or track.channel, fallback="Unknown Channel")
    stem = FIELD_SEPARATOR.join(
        (
            clean_component(track.artist, fallback="Unknown Artist"),
            clean_component(track.album, fallback="Unknown Album"),
            str(track.year),
            clean_component(track.title, fallback="Unknown Title"),
        )
    )
    return root / channel_dir / f"{_truncate_stem(stem)}{MEDIA_SUFFIX}"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
