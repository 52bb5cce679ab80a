"""Pydantic models describing catalog payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .utils import format_episode_label

ContentType = Literal["movie", "series"]


class Episode(BaseModel):
    """A single playable episode of a series."""

    model_config = ConfigDict(frozen=True)

    series_id: str
    season: int = Field(ge=0)
    episode: int = Field(ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return build_episode_id(self.series_id, self.season, self.episode)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def title(self) -> str:
        return format_episode_label(self.season, self.episode)

    def to_video(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "season": self.season,
            "episode": self.episode,
        }


class ResolvedItem(BaseModel):
    """A playlist title with its IMDb id, ready to be served to Stremio."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: ContentType
    name: str
    tmdb_id: str | None = None
    poster: str | None = None
    genres: tuple[str, ...] = ()
    description: str | None = None
    year: int | None = None
    runtime: str | None = None
    rating: float | None = None
    position: int = 0
    episodes: tuple[Episode, ...] = ()

    @field_validator("rating")
    @classmethod
    def _positive_rating(cls, value: float | None) -> float | None:
        if value is None or value <= 0:
            return None
        return round(float(value), 1)

    @field_validator("poster", "description", "runtime", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("episodes")
    @classmethod
    def _sort_episodes(cls, value: tuple[Episode, ...]) -> tuple[Episode, ...]:
        return tuple(sorted(value, key=lambda ep: (ep.season, ep.episode)))

    def display_name(self) -> str:
        """Return a human-friendly title for preview cards."""

        return (self.name or "").strip() or self.id

    def to_catalog_stub(self) -> dict[str, object]:
        """Return a Stremio-compatible meta object for catalog listings."""

        meta: dict[str, object] = {
            "id": self.id,
            "type": self.type,
            "name": self.display_name(),
        }
        if self.poster:
            meta["poster"] = self.poster
        if self.description:
            meta["description"] = self.description
        if self.genres:
            meta["genres"] = list(self.genres)
        if self.year:
            meta["releaseInfo"] = str(self.year)
        if self.runtime:
            meta["runtime"] = self.runtime
        if self.rating:
            meta["imdbRating"] = f"{self.rating:.1f}"
        return meta

    def to_meta(self) -> dict[str, object]:
        """Return the detailed meta object including the episode list."""

        meta = self.to_catalog_stub()
        meta["posterShape"] = "poster"
        if self.type == "series":
            meta["videos"] = [episode.to_video() for episode in self.episodes]
        return meta


def build_episode_id(series_id: str, season: int, episode: int) -> str:
    """Return the composite ``{imdb}:{season}:{episode}`` video id."""

    return f"{series_id}:{season}:{episode}"


def parse_episode_id(value: str) -> tuple[str, int, int] | None:
    """Split a composite video id back into its series id, season and episode."""

    base, sep, rest = (value or "").partition(":")
    if not sep or not base:
        return None
    season_text, sep, episode_text = rest.partition(":")
    if not sep or not season_text.isdigit() or not episode_text.isdigit():
        return None
    return base, int(season_text), int(episode_text)
