"""Grouping of playlist entries into movie and series candidates."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from .playlist import PlaylistEntry
from .utils import slugify, split_genres, unique_labels

logger = logging.getLogger(__name__)

IMDB_ID_RE = re.compile(r"^tt\d+$", re.IGNORECASE)
SERIES_SUFFIX_RE = re.compile(r"\s*S\d{1,2}E\d{1,2}.*$", re.IGNORECASE | re.DOTALL)


def clean_series_name(value: str) -> str:
    """Strip the episode marker and anything after it from a series title."""

    cleaned = SERIES_SUFFIX_RE.sub("", value or "")
    return cleaned.strip(" -_:|.")


@dataclass(slots=True)
class MovieCandidate:
    """A unique movie found in the playlist, before TMDb resolution."""

    key: str
    entry: PlaylistEntry
    url: str | None = None

    @property
    def kind(self) -> str:
        return "movie"

    @property
    def position(self) -> int:
        return self.entry.position

    @property
    def display_name(self) -> str:
        return self.entry.display_name

    @property
    def genres(self) -> list[str]:
        return split_genres(self.entry.group)

    @property
    def tmdb_id(self) -> str | None:
        return numeric_external_id(self.entry)

    @property
    def imdb_hint(self) -> str | None:
        return imdb_external_id(self.entry)


@dataclass(slots=True)
class SeriesCandidate:
    """A unique show with every distinct episode the playlist carries."""

    key: str
    entry: PlaylistEntry
    episodes: set[tuple[int, int]] = field(default_factory=set)
    episode_urls: dict[tuple[int, int], str] = field(default_factory=dict)

    @property
    def kind(self) -> str:
        return "series"

    @property
    def position(self) -> int:
        return self.entry.position

    @property
    def display_name(self) -> str:
        name = clean_series_name(self.entry.display_name)
        return name or clean_series_name(self.entry.name) or self.entry.display_name

    @property
    def genres(self) -> list[str]:
        return split_genres(self.entry.group)

    @property
    def tmdb_id(self) -> str | None:
        return numeric_external_id(self.entry)

    @property
    def imdb_hint(self) -> str | None:
        return imdb_external_id(self.entry)

    def sorted_episodes(self) -> list[tuple[int, int]]:
        return sorted(self.episodes)


@dataclass(slots=True)
class Aggregation:
    """Candidates of one ingestion pass, in playlist order."""

    movies: dict[str, MovieCandidate] = field(default_factory=dict)
    series: dict[str, SeriesCandidate] = field(default_factory=dict)
    movie_genres: list[str] = field(default_factory=list)
    series_genres: list[str] = field(default_factory=list)


def numeric_external_id(entry: PlaylistEntry) -> str | None:
    value = entry.external_id.strip()
    if value and value.isdigit():
        return value
    return None


def imdb_external_id(entry: PlaylistEntry) -> str | None:
    value = entry.external_id.strip()
    if IMDB_ID_RE.match(value):
        return value.lower()
    return None


def movie_key(entry: PlaylistEntry) -> str | None:
    external = numeric_external_id(entry)
    if external:
        return external
    slug = slugify(entry.display_name)
    return f"name:{slug}" if slug else None


def series_key(entry: PlaylistEntry) -> str | None:
    external = numeric_external_id(entry)
    if external:
        return external
    slug = slugify(clean_series_name(entry.name) or clean_series_name(entry.title))
    return f"name:{slug}" if slug else None


def aggregate(entries: Iterable[PlaylistEntry]) -> Aggregation:
    """Group entries into candidates keyed by TMDb id or normalised name."""

    result = Aggregation()
    movie_labels: list[str] = []
    series_labels: list[str] = []

    for entry in entries:
        if entry.kind == "movie":
            key = movie_key(entry)
            if key is None:
                continue
            candidate = result.movies.get(key)
            if candidate is None:
                result.movies[key] = MovieCandidate(key=key, entry=entry, url=entry.url)
                movie_labels.extend(split_genres(entry.group))
            elif candidate.url is None and entry.url:
                candidate.url = entry.url
        elif entry.kind == "series":
            if entry.episode is None:
                logger.debug(
                    "Skipping series entry without episode marker: %s", entry.display_name
                )
                continue
            key = series_key(entry)
            if key is None:
                continue
            candidate = result.series.get(key)
            if candidate is None:
                candidate = SeriesCandidate(key=key, entry=entry)
                result.series[key] = candidate
                series_labels.extend(split_genres(entry.group))
            candidate.episodes.add(entry.episode)
            if entry.url and entry.episode not in candidate.episode_urls:
                candidate.episode_urls[entry.episode] = entry.url

    result.movie_genres = unique_labels(movie_labels)
    result.series_genres = unique_labels(series_labels)
    return result
