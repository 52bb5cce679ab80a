"""Utilities for resolving metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings
from ..errors import ResolutionError

logger = logging.getLogger(__name__)

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"


@dataclass(slots=True)
class TMDBDetails:
    """Localized descriptive fields for a movie or show."""

    overview: str | None = None
    poster: str | None = None
    year: int | None = None
    runtime: str | None = None
    rating: float | None = None


class TMDBClient:
    """Client mapping TMDB ids to IMDb ids and fetching localized details.

    Every answer from TMDB, including "no IMDb id", is memoised for the
    lifetime of the process. Transport failures are never memoised so the
    next refresh retries them.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_key:
            raise ValueError("TMDB API key is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client
        self._imdb_ids: dict[tuple[str, str], str | None] = {}
        self._details: dict[tuple[str, str, str], TMDBDetails] = {}

    async def resolve_imdb_id(self, tmdb_id: str, content_type: str) -> str | None:
        """Return the IMDb id for a TMDB id, or ``None`` when TMDB has none."""

        key = (content_type, str(tmdb_id))
        if key in self._imdb_ids:
            logger.debug("TMDB cache hit for %s %s", content_type, tmdb_id)
            return self._imdb_ids[key]

        if content_type == "movie":
            endpoint = f"/movie/{tmdb_id}"
        else:
            endpoint = f"/tv/{tmdb_id}/external_ids"
        payload = await self._get_json(endpoint, tmdb_id=str(tmdb_id))

        imdb_id: str | None = None
        if payload is not None:
            raw = payload.get("imdb_id")
            if not raw:
                raw = (payload.get("external_ids") or {}).get("imdb_id")
            if isinstance(raw, str) and raw.strip():
                imdb_id = raw.strip()

        self._imdb_ids[key] = imdb_id
        return imdb_id

    async def fetch_details(
        self, tmdb_id: str, content_type: str, *, language: str | None = None
    ) -> TMDBDetails | None:
        """Fetch the localized record; failures are logged and return ``None``."""

        resolved_language = language or self._settings.tmdb_language
        key = (content_type, str(tmdb_id), resolved_language)
        cached = self._details.get(key)
        if cached is not None:
            return cached

        endpoint = f"/{'movie' if content_type == 'movie' else 'tv'}/{tmdb_id}"
        try:
            payload = await self._get_json(
                endpoint,
                tmdb_id=str(tmdb_id),
                params={"language": resolved_language},
            )
        except ResolutionError as exc:
            logger.warning("TMDB details unavailable for %s %s: %s", content_type, tmdb_id, exc)
            return None
        if payload is None:
            return None

        details = TMDBDetails(
            overview=_clean_text(payload.get("overview")),
            poster=self._build_image_url(payload.get("poster_path"), POSTER_BASE_URL),
            year=self._extract_year(payload, content_type),
            runtime=self._extract_runtime(payload, content_type),
            rating=self._extract_rating(payload),
        )
        self._details[key] = details
        return details

    async def _get_json(
        self,
        endpoint: str,
        *,
        tmdb_id: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        query = {"api_key": self._settings.tmdb_api_key, **(params or {})}
        try:
            response = await self._client.get(endpoint, params=query)
        except httpx.HTTPError as exc:
            raise ResolutionError(
                f"TMDB request {endpoint} failed: {exc.__class__.__name__}",
                tmdb_id=tmdb_id,
            ) from exc

        if response.status_code == 404:
            logger.debug("TMDB has no record at %s", endpoint)
            return None
        if response.status_code >= 400:
            raise ResolutionError(
                f"TMDB request {endpoint} returned HTTP {response.status_code}",
                tmdb_id=tmdb_id,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ResolutionError(
                f"TMDB request {endpoint} returned invalid JSON", tmdb_id=tmdb_id
            ) from exc
        if not isinstance(payload, dict):
            raise ResolutionError(
                f"TMDB request {endpoint} returned an unexpected payload",
                tmdb_id=tmdb_id,
            )
        return payload

    @staticmethod
    def _extract_year(result: dict[str, Any], content_type: str) -> int | None:
        date_key = "release_date" if content_type == "movie" else "first_air_date"
        date_value = result.get(date_key)
        if not isinstance(date_value, str) or len(date_value) < 4:
            return None
        try:
            return int(date_value[:4])
        except ValueError:
            return None

    @staticmethod
    def _extract_runtime(result: dict[str, Any], content_type: str) -> str | None:
        if content_type == "movie":
            minutes = result.get("runtime")
        else:
            run_times = result.get("episode_run_time") or []
            minutes = run_times[0] if isinstance(run_times, list) and run_times else None
        if isinstance(minutes, (int, float)) and minutes > 0:
            return f"{int(minutes)} min"
        return None

    @staticmethod
    def _extract_rating(result: dict[str, Any]) -> float | None:
        value = result.get("vote_average")
        if isinstance(value, (int, float)) and value > 0:
            return float(value)
        return None

    @staticmethod
    def _build_image_url(path: Any, base_url: str) -> str | None:
        if not isinstance(path, str) or not path:
            return None
        if path.startswith("http"):
            return path
        return f"{base_url}{path}"


def _clean_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
