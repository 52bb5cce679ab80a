"""Cheap reachability check for direct playlist URLs."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

# Servers that refuse HEAD outright get a one-byte ranged GET instead.
HEAD_REJECTED_STATUSES = frozenset({403, 405, 501})


class StreamProbe:
    """Checks that a direct URL answers before it is offered as a stream."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def is_available(self, url: str) -> bool:
        """Return ``False`` on any error status, transport failure or timeout."""

        timeout = self._settings.stream_probe_timeout_seconds
        headers = {"User-Agent": self._settings.user_agent}
        try:
            response = await self._client.head(
                url, headers=headers, follow_redirects=True, timeout=timeout
            )
            if response.status_code < 400:
                return True
            if response.status_code not in HEAD_REJECTED_STATUSES:
                logger.info("Stream probe for %s returned HTTP %s", url, response.status_code)
                return False

            async with self._client.stream(
                "GET",
                url,
                headers={**headers, "Range": "bytes=0-0"},
                follow_redirects=True,
                timeout=timeout,
            ) as ranged:
                available = ranged.status_code < 400
            if not available:
                logger.info("Stream probe for %s returned HTTP %s", url, ranged.status_code)
            return available
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.info("Stream probe for %s failed: %s", url, exc.__class__.__name__)
            return False
