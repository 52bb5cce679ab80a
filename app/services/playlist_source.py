"""Download of the source M3U playlist."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings
from ..errors import FetchError, FormatError
from ..playlist import DECLARATION_PREFIX

logger = logging.getLogger(__name__)


class PlaylistFetcher:
    """Fetches the raw playlist text from the configured location."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        # Some file hosts answer the default httpx agent with an HTML error page.
        return {
            "User-Agent": self._settings.user_agent,
            "Accept": "audio/x-mpegurl, application/x-mpegurl, text/plain, */*",
        }

    async def fetch(self, url: str | None = None) -> str:
        """Return the playlist body or raise ``FetchError``/``FormatError``."""

        target = (url or self._settings.playlist_url or "").strip()
        if not target:
            raise FetchError("PLAYLIST_URL is not configured")

        try:
            response = await self._client.get(
                target,
                headers=self._headers(),
                follow_redirects=True,
                timeout=self._settings.playlist_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"Playlist download returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(
                f"Playlist download failed: {exc.__class__.__name__}: {exc}"
            ) from exc

        text = response.text
        logger.debug("Playlist head: %r", text[:200])

        if DECLARATION_PREFIX.lower() not in text.lower():
            raise FormatError(
                f"Playlist is not M3U ({DECLARATION_PREFIX} missing); "
                "the host likely returned an HTML page"
            )
        return text
