"""Tests for download path construction."""

import sys
from pathlib import Path

import pytest

from accuripper.utils.path import build_track_path, clean_component
from tests.fakes import make_track


class TestBuildTrackPath:
    """Deterministic destination paths."""

    def test_layout(self) -> None:
        track = make_track(1, artist="Slowdive", album="Souvlaki", title="Alison", year=1993)

        path = build_track_path(Path("/music"), track, "Shoegaze")

        assert path == Path("/music/Shoegaze/Slowdive_-_Souvlaki_-_1993_-_Alison.m4a")

    def test_separators_never_create_directories(self) -> None:
        track = make_track(1, artist="AC/DC", album="Back\\In Black", title="Hells Bells")

        path = build_track_path(Path("/music"), track, "Rock/Metal")

        assert path.parent == Path("/music/Rock_Metal")
        assert path.name.startswith("AC_DC_-_Back_In Black_-_")

    def test_empty_fields_use_fallbacks(self) -> None:
        track = make_track(1, artist="", album="", title="", year=0)

        path = build_track_path(Path("/music"), track, "")

        assert path.parent.name == "5a1b"
        assert path.name == "Unknown Artist_-_Unknown Album_-_0_-_Unknown Title.m4a"

    def test_long_names_are_truncated(self) -> None:
        track = make_track(1, title="x" * 400)

        path = build_track_path(Path("/music"), track)

        assert len(path.name.encode("utf-8")) <= 255
        assert path.suffix == ".m4a"

    def test_same_track_same_path(self) -> None:
        track = make_track(9)

        assert build_track_path(Path("/m"), track) == build_track_path(Path("/m"), track)


def test_clean_component_replaces_separators() -> None:
    assert clean_component("Rock/Metal") == "Rock_Metal"
    assert clean_component("") == "Unknown"


@pytest.mark.skipif(sys.platform == "win32", reason="Windows rejects \"?\" in file names")
def test_punctuation_variants_get_distinct_paths() -> None:
    """Titles differing only in punctuation must not share a download path."""
    question = make_track(1, title="What?")
    underscore = make_track(1, title="What_")

    first = build_track_path(Path("/music"), question)
    second = build_track_path(Path("/music"), underscore)

    assert first != second
    assert first.name.endswith("_-_What?.m4a")
