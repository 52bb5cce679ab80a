"""Builds a fresh library snapshot from the playlist source."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from ..aggregator import aggregate
from ..models import Episode, ResolvedItem
from ..playlist import parse_playlist
from ..snapshot import EpisodeKey, Snapshot
from .playlist_source import PlaylistFetcher
from .resolver import IdentifierResolver, Resolution

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Runs fetch, parse, aggregation and resolution for one refresh."""

    def __init__(self, fetcher: PlaylistFetcher, resolver: IdentifierResolver):
        self._fetcher = fetcher
        self._resolver = resolver

    async def __call__(self) -> Snapshot:
        return await self.build_snapshot()

    async def build_snapshot(self) -> Snapshot:
        """Return a new snapshot; fetch and format errors propagate."""

        text = await self._fetcher.fetch()
        entries = parse_playlist(text)
        aggregation = aggregate(entries)
        logger.info(
            "Parsed %s playlist entries into %s movies and %s series",
            len(entries),
            len(aggregation.movies),
            len(aggregation.series),
        )

        movie_results, series_results = await asyncio.gather(
            self._resolver.resolve(aggregation.movies.values(), "movie"),
            self._resolver.resolve(aggregation.series.values(), "series"),
        )
        snapshot = build_library_snapshot(movie_results, series_results)
        logger.info(
            "Library ready with %s movies and %s series",
            len(snapshot.movies),
            len(snapshot.series),
        )
        return snapshot


@dataclass
class _SeriesAccumulator:
    resolution: Resolution
    episodes: set[EpisodeKey] = field(default_factory=set)
    urls: dict[EpisodeKey, str] = field(default_factory=dict)


def build_library_snapshot(
    movie_results: Sequence[Resolution],
    series_results: Sequence[Resolution],
) -> Snapshot:
    """Turn resolved candidates into catalog items and index them."""

    movies: list[ResolvedItem] = []
    movie_urls: dict[str, str] = {}
    for resolution in sorted(movie_results, key=lambda r: r.candidate.position):
        candidate = resolution.candidate
        movies.append(_resolved_item(resolution, "movie"))
        if candidate.url and resolution.imdb_id not in movie_urls:
            movie_urls[resolution.imdb_id] = candidate.url

    # Distinct playlist keys can resolve to the same show; their episodes merge.
    accumulators: dict[str, _SeriesAccumulator] = {}
    for resolution in sorted(series_results, key=lambda r: r.candidate.position):
        candidate = resolution.candidate
        accumulator = accumulators.setdefault(
            resolution.imdb_id, _SeriesAccumulator(resolution=resolution)
        )
        accumulator.episodes.update(candidate.episodes)
        for episode_key, url in candidate.episode_urls.items():
            accumulator.urls.setdefault(episode_key, url)

    series: list[ResolvedItem] = []
    episode_urls: dict[str, dict[EpisodeKey, str]] = {}
    for imdb_id, accumulator in accumulators.items():
        episodes = tuple(
            Episode(series_id=imdb_id, season=season, episode=number)
            for season, number in sorted(accumulator.episodes)
        )
        series.append(
            _resolved_item(accumulator.resolution, "series", episodes=episodes)
        )
        if accumulator.urls:
            episode_urls[imdb_id] = accumulator.urls

    return Snapshot.build(
        movies, series, movie_urls=movie_urls, episode_urls=episode_urls
    )


def _resolved_item(
    resolution: Resolution,
    content_type: str,
    *,
    episodes: tuple[Episode, ...] = (),
) -> ResolvedItem:
    candidate = resolution.candidate
    details = resolution.details
    logo = candidate.entry.logo or None
    return ResolvedItem(
        id=resolution.imdb_id,
        type=content_type,
        name=candidate.display_name,
        tmdb_id=candidate.tmdb_id,
        poster=(details.poster if details else None) or logo,
        genres=tuple(candidate.genres),
        description=details.overview if details else None,
        year=details.year if details else None,
        runtime=details.runtime if details else None,
        rating=details.rating if details else None,
        position=candidate.position,
        episodes=episodes,
    )
