"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="M3U Library", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    playlist_url: str | None = Field(
        default=None,
        alias="PLAYLIST_URL",
        validation_alias=AliasChoices("PLAYLIST_URL", "M3U_URL"),
    )
    playlist_timeout_seconds: float = Field(
        default=30.0, alias="PLAYLIST_TIMEOUT", gt=0
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="USER_AGENT")

    tmdb_api_key: str | None = Field(
        default=None,
        alias="TMDB_API_KEY",
        validation_alias=AliasChoices("TMDB_API_KEY", "TMDB_KEY"),
    )
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")
    tmdb_timeout_seconds: float = Field(default=15.0, alias="TMDB_TIMEOUT", gt=0)
    enrich_metadata: bool = Field(default=True, alias="ENRICH_METADATA")

    cache_ttl_seconds: int = Field(default=900, alias="CACHE_TTL", ge=0)
    movie_concurrency: int = Field(
        default=8, alias="MOVIE_CONCURRENCY", ge=1, le=64
    )
    series_concurrency: int = Field(
        default=4, alias="SERIES_CONCURRENCY", ge=1, le=64
    )

    stream_mode: Literal["autoplay", "menu"] = Field(
        default="autoplay", alias="STREAM_MODE"
    )
    validate_streams: bool = Field(default=False, alias="VALIDATE_STREAMS")
    stream_probe_timeout_seconds: float = Field(
        default=5.0, alias="STREAM_PROBE_TIMEOUT", gt=0
    )
    deprioritized_genre_prefix: str = Field(
        default="~", alias="DEPRIORITIZED_GENRE_PREFIX"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("playlist_url", "tmdb_api_key", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return value

    @field_validator("stream_mode", mode="before")
    @classmethod
    def _normalize_stream_mode(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    @property
    def tmdb_enabled(self) -> bool:
        """Return whether TMDb lookups can be performed."""

        return bool(self.tmdb_api_key)

    def is_deprioritized_genre(self, label: str) -> bool:
        """Return whether a genre label marks an item to be listed last."""

        prefix = self.deprioritized_genre_prefix
        if not prefix:
            return False
        return label.strip().startswith(prefix)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
