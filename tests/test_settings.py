"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings


def test_defaults_without_environment() -> None:
    settings = Settings(_env_file=None)

    assert settings.server_port == 7000
    assert settings.cache_ttl_seconds == 900
    assert settings.stream_mode == "autoplay"
    assert settings.validate_streams is False
    assert settings.tmdb_enabled is False


def test_legacy_variable_names_are_accepted() -> None:
    settings = Settings(
        _env_file=None,
        M3U_URL="https://dl.example.com/list.m3u",
        TMDB_KEY="secret",
    )

    assert settings.playlist_url == "https://dl.example.com/list.m3u"
    assert settings.tmdb_api_key == "secret"
    assert settings.tmdb_enabled is True


def test_blank_credentials_are_treated_as_missing() -> None:
    settings = Settings(_env_file=None, TMDB_API_KEY="   ", PLAYLIST_URL="")

    assert settings.tmdb_api_key is None
    assert settings.playlist_url is None


def test_stream_mode_is_case_insensitive() -> None:
    settings = Settings(_env_file=None, STREAM_MODE="Menu")

    assert settings.stream_mode == "menu"


def test_invalid_stream_mode_raises() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, STREAM_MODE="popup")


def test_concurrency_limits_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, MOVIE_CONCURRENCY=0)


def test_deprioritized_prefix_predicate() -> None:
    settings = Settings(_env_file=None, DEPRIORITIZED_GENRE_PREFIX="!")

    assert settings.is_deprioritized_genre("!Unsorted") is True
    assert settings.is_deprioritized_genre(" !Unsorted") is True
    assert settings.is_deprioritized_genre("Drama") is False


def test_empty_deprioritized_prefix_disables_predicate() -> None:
    settings = Settings(_env_file=None, DEPRIORITIZED_GENRE_PREFIX="")

    assert settings.is_deprioritized_genre("~Anything") is False
