"""Time-to-live cache holding the current library snapshot."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from dataclasses import replace
from enum import Enum
from typing import Awaitable, Callable

from ..snapshot import Snapshot

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[], Awaitable[Snapshot]]


class StoreState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class CatalogStore:
    """Owns the snapshot and swaps it atomically on refresh.

    Concurrent refresh triggers share one in-flight task. While a refresh
    runs, readers that already have a loaded snapshot keep receiving it; a
    failed refresh leaves the previous snapshot in place.
    """

    def __init__(
        self,
        loader: SnapshotLoader,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._snapshot = Snapshot.empty()
        self._refresh_task: asyncio.Task[Snapshot] | None = None
        self._failed_at: float | None = None
        self.refresh_count = 0

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def state(self) -> StoreState:
        if self.is_refreshing():
            return StoreState.LOADING
        if self._snapshot.is_loaded:
            return StoreState.READY
        return StoreState.EMPTY

    def is_refreshing(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    def is_stale(self) -> bool:
        """Return whether the TTL has passed since the last load attempt.

        A failed attempt counts like a load, so a broken source is retried
        once per TTL window instead of on every query.
        """

        last_attempt = self._snapshot.loaded_at
        if self._failed_at is not None and (
            last_attempt is None or self._failed_at > last_attempt
        ):
            last_attempt = self._failed_at
        if last_attempt is None:
            return True
        return self._clock() - last_attempt >= self._ttl_seconds

    async def ensure_fresh(self, *, force: bool = False) -> Snapshot:
        """Return a snapshot, refreshing first when stale or forced."""

        current = self._snapshot
        if not force and not self.is_stale():
            return current

        task = self._refresh_task
        if task is not None and not task.done():
            if not force and current.is_loaded:
                return current
            return await asyncio.shield(task)

        return await asyncio.shield(self._start_refresh())

    def request_refresh(self) -> None:
        """Start a background refresh unless one is already running."""

        if not self.is_refreshing():
            self._start_refresh()

    async def stop(self) -> None:
        """Cancel an in-flight refresh."""

        task = self._refresh_task
        if task is None or task.done():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    def _start_refresh(self) -> asyncio.Task[Snapshot]:
        task = asyncio.create_task(self._refresh())
        task.add_done_callback(self._on_refresh_done)
        self._refresh_task = task
        return task

    async def _refresh(self) -> Snapshot:
        self.refresh_count += 1
        had_snapshot = self._snapshot.is_loaded
        try:
            snapshot = await self._loader()
        except Exception as exc:
            self._failed_at = self._clock()
            if had_snapshot:
                logger.warning("Library refresh failed, keeping previous snapshot: %s", exc)
            else:
                logger.warning("Initial library load failed: %s", exc)
            raise
        snapshot = replace(snapshot, loaded_at=self._clock())
        self._failed_at = None
        self._snapshot = snapshot
        return snapshot

    @staticmethod
    def _on_refresh_done(task: asyncio.Task[Snapshot]) -> None:
        # Mark the failure as retrieved; callers awaiting the task still see it.
        if not task.cancelled():
            task.exception()
