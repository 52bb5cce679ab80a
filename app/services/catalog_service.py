"""Read-only catalog, meta and stream queries over the library snapshot."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping
from urllib.parse import parse_qsl

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..config import Settings
from ..errors import NotFound, PlaylistError, StreamUnavailable
from ..models import ResolvedItem, parse_episode_id
from ..snapshot import Snapshot
from ..utils import format_episode_label, genre_slug
from .catalog_store import CatalogStore
from .stream_probe import StreamProbe

logger = logging.getLogger(__name__)

MOVIE_CATALOG_ID = "m3u-movies"
SERIES_CATALOG_ID = "m3u-series"
CATALOG_IDS: dict[str, str] = {"movie": MOVIE_CATALOG_ID, "series": SERIES_CATALOG_ID}
CATALOG_NAMES: dict[str, str] = {"movie": "My Movies (M3U)", "series": "My Series (M3U)"}
BINGE_GROUP = "m3ulibrary-direct"


class CatalogExtra(BaseModel):
    """Normalised view of Stremio catalog ``extra`` arguments."""

    model_config = ConfigDict(populate_by_name=True)

    genre: str | None = None
    skip: int = Field(default=0, ge=0)
    force_refresh: bool = Field(
        default=False,
        validation_alias=AliasChoices("refresh", "force", "forceRefresh"),
    )

    @classmethod
    def from_path(
        cls, raw: str | None, overrides: Mapping[str, str] | None = None
    ) -> "CatalogExtra":
        """Parse the ``genre=Drama&skip=100`` path segment used by Stremio."""

        payload = dict(parse_qsl(raw or "", keep_blank_values=True))
        if overrides:
            payload.update(overrides)
        return cls.from_request(payload)

    @classmethod
    def from_request(cls, params: Mapping[str, str]) -> "CatalogExtra":
        return cls.model_validate(dict(params))

    @field_validator("genre", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("skip", mode="before")
    @classmethod
    def _parse_skip(cls, value: object) -> object:
        if value is None or value == "":
            return 0
        if isinstance(value, int):
            return value
        try:
            return int(str(value))
        except (TypeError, ValueError) as exc:
            raise ValueError("skip must be an integer") from exc

    @field_validator("force_refresh", mode="before")
    @classmethod
    def _coerce_bool(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return value


class CatalogService:
    """Serves Stremio queries; only the store ever replaces the snapshot."""

    def __init__(
        self,
        settings: Settings,
        store: CatalogStore,
        stream_probe: StreamProbe | None = None,
        *,
        is_deprioritized: Callable[[str], bool] | None = None,
    ):
        self._settings = settings
        self._store = store
        self._probe = stream_probe if settings.validate_streams else None
        self._is_deprioritized = is_deprioritized or settings.is_deprioritized_genre

    @property
    def store(self) -> CatalogStore:
        return self._store

    async def refresh(self) -> Snapshot:
        """Force a reload; failures propagate to the caller."""

        return await self._store.ensure_fresh(force=True)

    async def list_catalog(
        self,
        content_type: str,
        catalog_id: str,
        extra: CatalogExtra | None = None,
    ) -> list[dict[str, Any]]:
        """Return catalog metas, optionally restricted to one genre."""

        extra = extra or CatalogExtra()
        if CATALOG_IDS.get(content_type) != catalog_id:
            return []
        snapshot = await self._current_snapshot(force=extra.force_refresh)
        items = list(snapshot.items(content_type))

        if extra.genre:
            wanted = genre_slug(extra.genre)
            items = [
                item
                for item in items
                if any(genre_slug(label) == wanted for label in item.genres)
            ]
            items.sort(key=lambda item: item.position)
        else:
            items.sort(key=lambda item: (self._deprioritized(item), item.position))

        return [item.to_catalog_stub() for item in items[extra.skip:]]

    async def get_meta(self, content_type: str, meta_id: str) -> dict[str, Any]:
        """Return the detailed meta record or raise ``NotFound``."""

        snapshot = await self._current_snapshot()
        item = snapshot.get(content_type, meta_id)
        if item is None:
            raise NotFound(f"No {content_type} with id {meta_id}")
        return item.to_meta()

    async def get_streams(self, content_type: str, stream_id: str) -> list[dict[str, Any]]:
        """Return the playlist's direct stream for a movie or episode, if any."""

        snapshot = await self._current_snapshot()
        try:
            url, title = self._lookup_stream(snapshot, content_type, stream_id)
        except StreamUnavailable as exc:
            logger.debug("No direct stream for %s %s: %s", content_type, stream_id, exc)
            return []

        if self._probe is not None and not await self._probe.is_available(url):
            logger.info("Direct stream for %s %s failed validation", content_type, stream_id)
            return []
        return [self._stream_payload(url, title)]

    async def manifest_catalogs(self) -> list[dict[str, Any]]:
        """Return manifest catalog entries with genre options when available."""

        snapshot = await self._current_snapshot()
        catalogs: list[dict[str, Any]] = []
        for content_type in ("movie", "series"):
            genre_extra: dict[str, Any] = {"name": "genre", "isRequired": False}
            options = list(snapshot.genres(content_type))
            if options:
                genre_extra["options"] = options
            catalogs.append(
                {
                    "type": content_type,
                    "id": CATALOG_IDS[content_type],
                    "name": CATALOG_NAMES[content_type],
                    "extra": [genre_extra, {"name": "skip", "isRequired": False}],
                }
            )
        return catalogs

    async def _current_snapshot(self, *, force: bool = False) -> Snapshot:
        try:
            return await self._store.ensure_fresh(force=force)
        except PlaylistError as exc:
            logger.error("Library unavailable: %s", exc)
            # Previously loaded data (or the empty snapshot) keeps queries answering.
            return self._store.snapshot

    def _deprioritized(self, item: ResolvedItem) -> bool:
        return any(self._is_deprioritized(label) for label in item.genres)

    def _lookup_stream(
        self, snapshot: Snapshot, content_type: str, stream_id: str
    ) -> tuple[str, str]:
        if content_type == "movie":
            url = snapshot.movie_url(stream_id)
            if not url:
                raise StreamUnavailable("movie has no direct URL")
            item = snapshot.get("movie", stream_id)
            return url, item.display_name() if item else stream_id

        if content_type == "series":
            parsed = parse_episode_id(stream_id)
            if parsed is None:
                raise StreamUnavailable("not an episode id")
            series_id, season, episode = parsed
            url = snapshot.episode_url(series_id, season, episode)
            if not url:
                raise StreamUnavailable("episode has no direct URL")
            item = snapshot.get("series", series_id)
            label = format_episode_label(season, episode)
            name = item.display_name() if item else series_id
            return url, f"{name} {label}"

        raise StreamUnavailable(f"unsupported content type {content_type}")

    def _stream_payload(self, url: str, title: str) -> dict[str, Any]:
        stream: dict[str, Any] = {
            "url": url,
            "name": self._settings.app_name,
            "title": title,
        }
        if self._settings.stream_mode == "autoplay":
            stream["behaviorHints"] = {"bingeGroup": BINGE_GROUP}
        else:
            stream["title"] = f"{title}\nDirect link from playlist"
        return stream
