"""Tests for the M3U playlist parser."""

from __future__ import annotations

import pytest

from app.playlist import (
    classify_kind,
    parse_attributes,
    parse_episode_marker,
    parse_playlist,
)

PLAYLIST = """#EXTM3U
#EXTINF:-1 tvg-id="603" tvg-type="movie" tvg-name="The Matrix" tvg-logo="https://img.example.com/matrix.jpg" group-title="Action / Sci-Fi",The Matrix
http://media.example.com/matrix.mkv

#EXTINF:-1 tvg-id="1399" tvg-type="tv" tvg-name="Show S01E01" group-title="Drama",Show S01E01
#EXTVLCOPT:http-user-agent=Mozilla
http://media.example.com/show/s01e01.mkv
#extinf:-1 tvg-id=1399 tvg-type=TV tvg-name=Show_S01E02,Show S01E02
http://media.example.com/show/s01e02.mkv
"""


def test_parse_playlist_extracts_typed_entries() -> None:
    entries = parse_playlist(PLAYLIST)

    assert [entry.position for entry in entries] == [0, 1, 2]
    movie = entries[0]
    assert movie.external_id == "603"
    assert movie.kind == "movie"
    assert movie.name == "The Matrix"
    assert movie.title == "The Matrix"
    assert movie.logo == "https://img.example.com/matrix.jpg"
    assert movie.group == "Action / Sci-Fi"
    assert movie.url == "http://media.example.com/matrix.mkv"
    assert movie.episode is None


def test_parse_playlist_skips_comment_lines_before_url() -> None:
    entries = parse_playlist(PLAYLIST)

    assert entries[1].url == "http://media.example.com/show/s01e01.mkv"
    assert entries[1].episode == (1, 1)


def test_unquoted_attributes_and_lowercase_sentinel() -> None:
    entries = parse_playlist(PLAYLIST)
    episode = entries[2]

    assert episode.external_id == "1399"
    assert episode.kind == "series"
    assert episode.raw_kind == "TV"
    assert episode.name == "Show_S01E02"
    assert episode.episode == (1, 2)


def test_parse_playlist_is_idempotent() -> None:
    assert parse_playlist(PLAYLIST) == parse_playlist(PLAYLIST)


def test_declaration_without_colon_or_url() -> None:
    entries = parse_playlist(
        '#EXTINF tvg-id="603" tvg-type="movie" tvg-name="The Matrix",The Matrix'
    )

    assert len(entries) == 1
    assert entries[0].external_id == "603"
    assert entries[0].title == "The Matrix"
    assert entries[0].url is None


def test_title_falls_back_to_name_without_comma() -> None:
    entries = parse_playlist('#EXTINF:-1 tvg-id="7" tvg-type="movie" tvg-name="Heat"')

    assert entries[0].title == "Heat"


def test_commas_inside_quoted_values_do_not_split_title() -> None:
    entries = parse_playlist(
        '#EXTINF:-1 tvg-type="movie" group-title="Drama, Crime" tvg-name="Heat",Heat (1995)'
    )

    assert entries[0].group == "Drama, Crime"
    assert entries[0].title == "Heat (1995)"


def test_declaration_without_url_does_not_steal_next_locator() -> None:
    text = "\n".join(
        [
            '#EXTINF:-1 tvg-type="movie",First',
            '#EXTINF:-1 tvg-type="movie",Second',
            "http://media.example.com/second.mkv",
        ]
    )
    first, second = parse_playlist(text)

    assert first.url is None
    assert second.url == "http://media.example.com/second.mkv"


def test_whitespace_is_normalised() -> None:
    entries = parse_playlist(
        '   #EXTINF:-1   tvg-type="movie"   tvg-name="Alien",   Alien   \r\n\r\n  http://x/alien.mp4  '
    )

    assert entries[0].title == "Alien"
    assert entries[0].url == "http://x/alien.mp4"


def test_episode_marker_prefers_name_over_title() -> None:
    entries = parse_playlist('#EXTINF:-1 tvg-type="tv" tvg-name="Show S02E03",Show S09E09')

    assert entries[0].episode == (2, 3)


def test_episode_marker_falls_back_to_title() -> None:
    entries = parse_playlist('#EXTINF:-1 tvg-type="tv" tvg-name="Show",Show s1e4')

    assert entries[0].episode == (1, 4)


def test_unrecognised_kind_is_kept_without_kind() -> None:
    entries = parse_playlist('#EXTINF:-1 tvg-type="radio",Jazz FM\nhttp://x/jazz')

    assert len(entries) == 1
    assert entries[0].kind is None
    assert entries[0].raw_kind == "radio"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("movie", "movie"),
        ("MOVIE", "movie"),
        ("tv", "series"),
        ("Series", "series"),
        ("show", "series"),
        ("live", None),
        ("", None),
    ],
)
def test_classify_kind(raw: str, expected: str | None) -> None:
    assert classify_kind(raw) == expected


def test_parse_attributes_accepts_mixed_quoting() -> None:
    attributes = parse_attributes(
        "-1 tvg-id=42 tvg-name='Single Quoted' tvg-logo=\"http://x/a.png?a=1\" group-title=Kids"
    )

    assert attributes == {
        "tvg-id": "42",
        "tvg-name": "Single Quoted",
        "tvg-logo": "http://x/a.png?a=1",
        "group-title": "Kids",
    }


def test_parse_episode_marker_without_match() -> None:
    assert parse_episode_marker("Season One", None, "") is None


def test_entries_are_hashable_values() -> None:
    entries = parse_playlist(PLAYLIST) + parse_playlist(PLAYLIST)

    assert len(set(entries)) == 3
