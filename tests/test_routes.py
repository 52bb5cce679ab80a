from __future__ import annotations

from datetime import datetime

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.config import Settings
from app.errors import FetchError
from app.main import ADDON_ID, register_routes
from app.models import Episode, ResolvedItem
from app.services.catalog_service import CatalogService
from app.services.catalog_store import CatalogStore
from app.snapshot import Snapshot


def build_snapshot() -> Snapshot:
    movies = [
        ResolvedItem(id="tt0133093", type="movie", name="The Matrix", genres=["Sci-Fi"]),
        ResolvedItem(id="tt0137523", type="movie", name="Fight Club", genres=["Drama"], position=1),
    ]
    series = [
        ResolvedItem(
            id="tt0944947",
            type="series",
            name="Show",
            position=2,
            episodes=[Episode(series_id="tt0944947", season=1, episode=1)],
        )
    ]
    return Snapshot.build(
        movies,
        series,
        movie_urls={"tt0133093": "http://media.example.com/matrix.mkv"},
        episode_urls={"tt0944947": {(1, 1): "http://media.example.com/show/s01e01.mkv"}},
    )


def build_app(loader=None) -> FastAPI:
    snapshot = build_snapshot()

    async def default_loader() -> Snapshot:
        return snapshot

    app = FastAPI()
    register_routes(app)
    store = CatalogStore(loader or default_loader, ttl_seconds=3600)
    app.state.catalog_service = CatalogService(Settings(_env_file=None), store)
    return app


def test_manifest_advertises_catalog_meta_and_stream() -> None:
    with TestClient(build_app()) as client:
        response = client.get("/manifest.json")

    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == ADDON_ID
    assert payload["resources"] == ["catalog", "meta", "stream"]
    assert payload["types"] == ["movie", "series"]
    assert payload["idPrefixes"] == ["tt"]
    assert [catalog["id"] for catalog in payload["catalogs"]] == ["m3u-movies", "m3u-series"]
    assert payload["catalogs"][0]["extra"][0]["options"] == ["Drama", "Sci-Fi"]


def test_catalog_route_accepts_extra_path_segment() -> None:
    with TestClient(build_app()) as client:
        plain = client.get("/catalog/movie/m3u-movies.json")
        filtered = client.get("/catalog/movie/m3u-movies/genre=Drama.json")
        skipped = client.get("/catalog/movie/m3u-movies/skip=1.json")

    assert [meta["id"] for meta in plain.json()["metas"]] == ["tt0133093", "tt0137523"]
    assert [meta["id"] for meta in filtered.json()["metas"]] == ["tt0137523"]
    assert [meta["id"] for meta in skipped.json()["metas"]] == ["tt0137523"]


def test_catalog_route_rejects_bad_extra() -> None:
    with TestClient(build_app()) as client:
        negative = client.get("/catalog/movie/m3u-movies/skip=-5.json")
        garbage = client.get("/catalog/movie/m3u-movies/skip=abc.json")

    assert negative.status_code == 400
    assert garbage.status_code == 400


def test_unsupported_type_is_rejected() -> None:
    with TestClient(build_app()) as client:
        response = client.get("/catalog/channel/m3u-movies.json")

    assert response.status_code == 400


def test_meta_route_returns_videos_and_404() -> None:
    with TestClient(build_app()) as client:
        found = client.get("/meta/series/tt0944947.json")
        missing = client.get("/meta/movie/tt0000000.json")

    assert found.status_code == 200
    assert found.json()["meta"]["videos"][0]["id"] == "tt0944947:1:1"
    assert missing.status_code == 404


def test_stream_route_serves_direct_urls() -> None:
    with TestClient(build_app()) as client:
        movie = client.get("/stream/movie/tt0133093.json")
        episode = client.get("/stream/series/tt0944947:1:1.json")
        absent = client.get("/stream/movie/tt0137523.json")

    assert movie.json()["streams"][0]["url"] == "http://media.example.com/matrix.mkv"
    assert episode.json()["streams"][0]["url"] == "http://media.example.com/show/s01e01.mkv"
    assert absent.json() == {"streams": []}


def test_refresh_route_reports_counts_and_failures() -> None:
    calls = 0
    snapshot = build_snapshot()

    async def loader() -> Snapshot:
        nonlocal calls
        calls += 1
        if calls > 1:
            raise FetchError("Playlist download returned HTTP 503")
        return snapshot

    with TestClient(build_app(loader)) as client:
        first = client.post("/api/refresh")
        second = client.post("/api/refresh")
        catalog = client.get("/catalog/movie/m3u-movies.json")

    assert first.json() == {"status": "ok", "movies": 2, "series": 1}
    assert second.status_code == 502
    assert len(catalog.json()["metas"]) == 2


def test_healthcheck_reports_store_state() -> None:
    with TestClient(build_app()) as client:
        before = client.get("/healthz").json()
        client.get("/catalog/movie/m3u-movies.json")
        after = client.get("/healthz").json()

    assert before == {
        "status": "ok",
        "state": "empty",
        "refreshes": 0,
        "generatedAt": None,
    }
    assert after["state"] == "ready"
    assert after["refreshes"] == 1
    assert datetime.fromisoformat(after["generatedAt"]).tzinfo is not None


def test_package_exposes_application() -> None:
    import m3ulibrary

    assert m3ulibrary.__version__ == "1.0.0"
    assert isinstance(m3ulibrary.app, FastAPI)
