"""Bounded, failure-isolated resolution of candidates to IMDb ids."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, Union

from ..aggregator import MovieCandidate, SeriesCandidate
from ..config import Settings
from ..errors import ResolutionError
from .tmdb import TMDBClient, TMDBDetails

logger = logging.getLogger(__name__)

Candidate = Union[MovieCandidate, SeriesCandidate]


@dataclass(slots=True)
class Resolution:
    """A candidate paired with its IMDb id and optional TMDB details."""

    candidate: Candidate
    imdb_id: str
    details: TMDBDetails | None = None


class IdentifierResolver:
    """Resolves batches of candidates with a per-kind concurrency limit."""

    def __init__(self, settings: Settings, tmdb_client: TMDBClient | None):
        self._tmdb = tmdb_client
        self._enrich = settings.enrich_metadata
        self._semaphores = {
            "movie": asyncio.Semaphore(settings.movie_concurrency),
            "series": asyncio.Semaphore(settings.series_concurrency),
        }

    async def resolve(
        self, candidates: Iterable[Candidate], content_type: str
    ) -> list[Resolution]:
        """Resolve every candidate, dropping the ones that fail.

        The result is ordered by playlist position, never by completion order.
        """

        batch = list(candidates)
        if not batch:
            return []

        results = await asyncio.gather(
            *(self._resolve_one(candidate, content_type) for candidate in batch),
            return_exceptions=True,
        )
        resolved: list[Resolution] = []
        for candidate, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Resolution of %s %r failed unexpectedly: %s",
                    content_type,
                    candidate.display_name,
                    result,
                )
                continue
            if result is None:
                continue
            resolved.append(result)

        resolved.sort(key=lambda resolution: resolution.candidate.position)
        logger.info(
            "Resolved %s of %s %s candidates", len(resolved), len(batch), content_type
        )
        return resolved

    async def _resolve_one(
        self, candidate: Candidate, content_type: str
    ) -> Resolution | None:
        if candidate.imdb_hint:
            return Resolution(candidate=candidate, imdb_id=candidate.imdb_hint)

        tmdb_id = candidate.tmdb_id
        if tmdb_id is None or self._tmdb is None:
            logger.debug(
                "No resolvable identifier for %s %r", content_type, candidate.display_name
            )
            return None

        async with self._semaphores[content_type]:
            try:
                imdb_id = await self._tmdb.resolve_imdb_id(tmdb_id, content_type)
            except ResolutionError as exc:
                logger.warning(
                    "Dropping %s %r (TMDB %s): %s",
                    content_type,
                    candidate.display_name,
                    tmdb_id,
                    exc,
                )
                return None
            if imdb_id is None:
                logger.info(
                    "TMDB %s %s has no IMDb id; skipping %r",
                    content_type,
                    tmdb_id,
                    candidate.display_name,
                )
                return None

            details: TMDBDetails | None = None
            if self._enrich:
                details = await self._tmdb.fetch_details(tmdb_id, content_type)

        return Resolution(candidate=candidate, imdb_id=imdb_id, details=details)
