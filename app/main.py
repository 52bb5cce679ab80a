"""Entry point for the FastAPI-powered Stremio addon."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import settings
from .errors import NotFound, PlaylistError
from .services.catalog_service import CatalogExtra, CatalogService
from .services.catalog_store import CatalogStore
from .services.ingestion import IngestionPipeline
from .services.playlist_source import PlaylistFetcher
from .services.resolver import IdentifierResolver
from .services.stream_probe import StreamProbe
from .services.tmdb import TMDBClient

logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

ADDON_ID = "com.m3ulibrary.python"
ADDON_VERSION = "1.0.0"
SUPPORTED_TYPES = ("movie", "series")

app: FastAPI


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    playlist_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.playlist_timeout_seconds, connect=10.0),
        )
    )
    stream_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.stream_probe_timeout_seconds),
        )
    )

    tmdb: TMDBClient | None = None
    if settings.tmdb_enabled:
        tmdb_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url),
                timeout=httpx.Timeout(settings.tmdb_timeout_seconds, connect=5.0),
            )
        )
        tmdb = TMDBClient(settings, tmdb_http_client)
    else:
        logger.warning(
            "TMDB_API_KEY is not set; only entries with IMDb tvg-ids will be listed"
        )

    pipeline = IngestionPipeline(
        PlaylistFetcher(settings, playlist_client),
        IdentifierResolver(settings, tmdb),
    )
    store = CatalogStore(pipeline, ttl_seconds=settings.cache_ttl_seconds)
    catalog_service = CatalogService(
        settings, store, StreamProbe(settings, stream_client)
    )

    app.state.catalog_service = catalog_service
    if settings.playlist_url:
        store.request_refresh()
    else:
        logger.warning("PLAYLIST_URL is not set; catalogs will stay empty")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await store.stop()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Stremio catalogs built from a personal M3U playlist",
        version=ADDON_VERSION,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_catalog_service(app: FastAPI) -> CatalogService:
    service = getattr(app.state, "catalog_service", None)
    if not isinstance(service, CatalogService):
        raise RuntimeError("Catalog service not initialised")
    return service


def _ensure_supported_type(content_type: str) -> None:
    if content_type not in SUPPORTED_TYPES:
        raise HTTPException(status_code=400, detail="Unsupported content type")


def register_routes(fastapi_app: FastAPI) -> None:
    async def _catalog_endpoint(
        request: Request,
        content_type: str,
        catalog_id: str,
        extra_path: str | None = None,
    ) -> JSONResponse:
        _ensure_supported_type(content_type)
        service = get_catalog_service(fastapi_app)
        try:
            extra = CatalogExtra.from_path(extra_path, request.query_params)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400,
                detail=exc.errors(include_url=False, include_context=False),
            ) from exc

        metas = await service.list_catalog(content_type, catalog_id, extra)
        return JSONResponse({"metas": metas})

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, Any]:
        service = getattr(fastapi_app.state, "catalog_service", None)
        if not isinstance(service, CatalogService):
            return {"status": "ok", "state": "unknown"}
        store = service.store
        generated_at = store.snapshot.generated_at
        return {
            "status": "ok",
            "state": store.state.value,
            "refreshes": store.refresh_count,
            "generatedAt": generated_at.isoformat() if generated_at else None,
        }

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        service = get_catalog_service(fastapi_app)
        catalogs = await service.manifest_catalogs()
        return {
            "id": ADDON_ID,
            "version": ADDON_VERSION,
            "name": settings.app_name,
            "description": (
                "Library built from a private M3U playlist. Entries are matched to "
                "IMDb through TMDb so other add-ons can supply streams."
            ),
            "resources": ["catalog", "meta", "stream"],
            "types": list(SUPPORTED_TYPES),
            "idPrefixes": ["tt"],
            "catalogs": catalogs,
            "behaviorHints": {"configurable": False, "configurationRequired": False},
        }

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}.json")
    async def catalog(
        request: Request, content_type: str, catalog_id: str
    ) -> JSONResponse:
        return await _catalog_endpoint(request, content_type, catalog_id)

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_extra(
        request: Request, content_type: str, catalog_id: str, extra: str
    ) -> JSONResponse:
        return await _catalog_endpoint(request, content_type, catalog_id, extra)

    @fastapi_app.get("/meta/{content_type}/{meta_id}.json")
    async def meta(content_type: str, meta_id: str) -> JSONResponse:
        _ensure_supported_type(content_type)
        service = get_catalog_service(fastapi_app)
        try:
            payload = await service.get_meta(content_type, meta_id)
        except NotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse({"meta": payload})

    @fastapi_app.get("/stream/{content_type}/{stream_id}.json")
    async def stream(content_type: str, stream_id: str) -> JSONResponse:
        _ensure_supported_type(content_type)
        service = get_catalog_service(fastapi_app)
        streams = await service.get_streams(content_type, stream_id)
        return JSONResponse({"streams": streams})

    @fastapi_app.post("/api/refresh")
    async def refresh_library() -> JSONResponse:
        service = get_catalog_service(fastapi_app)
        try:
            snapshot = await service.refresh()
        except PlaylistError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return JSONResponse(
            {
                "status": "ok",
                "movies": len(snapshot.movies),
                "series": len(snapshot.series),
            }
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
