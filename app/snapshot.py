"""Immutable catalog snapshot and its lookup indexes."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Iterable, Mapping

from .models import ResolvedItem
from .utils import unique_labels

EpisodeKey = tuple[int, int]

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One complete materialisation of the library.

    A snapshot is never mutated; refreshing the library builds a new one and
    swaps the reference held by the store.
    """

    loaded_at: float | None = None
    generated_at: datetime | None = None
    movies: tuple[ResolvedItem, ...] = ()
    series: tuple[ResolvedItem, ...] = ()
    movies_by_id: Mapping[str, ResolvedItem] = field(default_factory=lambda: _EMPTY)
    series_by_id: Mapping[str, ResolvedItem] = field(default_factory=lambda: _EMPTY)
    movie_urls: Mapping[str, str] = field(default_factory=lambda: _EMPTY)
    episode_urls: Mapping[str, Mapping[EpisodeKey, str]] = field(default_factory=lambda: _EMPTY)
    movie_genres: tuple[str, ...] = ()
    series_genres: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @property
    def is_loaded(self) -> bool:
        return self.loaded_at is not None

    def items(self, content_type: str) -> tuple[ResolvedItem, ...]:
        if content_type == "movie":
            return self.movies
        if content_type == "series":
            return self.series
        return ()

    def get(self, content_type: str, item_id: str) -> ResolvedItem | None:
        if content_type == "movie":
            return self.movies_by_id.get(item_id)
        if content_type == "series":
            return self.series_by_id.get(item_id)
        return None

    def genres(self, content_type: str) -> tuple[str, ...]:
        if content_type == "movie":
            return self.movie_genres
        if content_type == "series":
            return self.series_genres
        return ()

    def movie_url(self, item_id: str) -> str | None:
        return self.movie_urls.get(item_id)

    def episode_url(self, series_id: str, season: int, episode: int) -> str | None:
        return self.episode_urls.get(series_id, _EMPTY).get((season, episode))

    @classmethod
    def build(
        cls,
        movies: Iterable[ResolvedItem],
        series: Iterable[ResolvedItem],
        *,
        movie_urls: Mapping[str, str] | None = None,
        episode_urls: Mapping[str, Mapping[EpisodeKey, str]] | None = None,
        loaded_at: float | None = None,
    ) -> "Snapshot":
        """Index resolved items; the first item per IMDb id wins."""

        movie_list = _first_per_id(movies)
        series_list = _first_per_id(series)
        movies_by_id = {item.id: item for item in movie_list}
        series_by_id = {item.id: item for item in series_list}
        frozen_episode_urls = {
            series_id: MappingProxyType(dict(urls))
            for series_id, urls in (episode_urls or {}).items()
            if series_id in series_by_id and urls
        }
        return cls(
            loaded_at=time.monotonic() if loaded_at is None else loaded_at,
            generated_at=datetime.now(timezone.utc),
            movies=tuple(movie_list),
            series=tuple(series_list),
            movies_by_id=MappingProxyType(movies_by_id),
            series_by_id=MappingProxyType(series_by_id),
            movie_urls=MappingProxyType(
                {
                    item_id: url
                    for item_id, url in (movie_urls or {}).items()
                    if item_id in movies_by_id and url
                }
            ),
            episode_urls=MappingProxyType(frozen_episode_urls),
            movie_genres=_sorted_genres(movie_list),
            series_genres=_sorted_genres(series_list),
        )


def _first_per_id(items: Iterable[ResolvedItem]) -> list[ResolvedItem]:
    ordered = sorted(items, key=lambda item: item.position)
    seen: set[str] = set()
    result: list[ResolvedItem] = []
    for item in ordered:
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
    return result


def _sorted_genres(items: Iterable[ResolvedItem]) -> tuple[str, ...]:
    labels = unique_labels(label for item in items for label in item.genres)
    return tuple(sorted(labels, key=str.casefold))
