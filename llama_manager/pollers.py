"""Fixed-cadence pollers that publish whole snapshots of manager state."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

import httpx

from .control_client import ControlApiClient
from .errors import ClientNotStarted, ControlApiError
from .models import Preset, PresetList, StatusSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures a poll absorbs; anything else is a bug and propagates.
POLL_ERRORS = (httpx.HTTPError, httpx.InvalidURL, ClientNotStarted, ControlApiError, ValueError)


class PeriodicPoller(Generic[T]):
    """Runs ``fetch`` every ``interval`` seconds and publishes the result.

    At most one fetch is in flight. A scheduled tick that finds one
    outstanding is skipped; ``refresh`` waits for it and then fetches again.
    A failed fetch leaves the published value untouched. Results that land
    after ``stop`` are discarded.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[T]],
        interval: float | None,
    ):
        self.name = name
        self._fetch = fetch
        self._interval = interval
        self._value: T | None = None
        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._ticks: set[asyncio.Task] = set()
        self._stopped = False
        self._listeners: list[Callable[[T], None]] = []
        self.failure_count = 0
        self.skipped_ticks = 0
        self.last_error: str | None = None
        self.last_success: float | None = None

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def running(self) -> bool:
        return self._task is not None

    def add_listener(self, listener: Callable[[T], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[T], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self) -> None:
        if self._task is not None:
            return
        self._stopped = False
        self._task = asyncio.create_task(self._run_loop(), name=f"poll-{self.name}")

    async def stop(self) -> None:
        self._stopped = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def tick(self) -> bool:
        """Scheduled poll. Returns False when skipped or failed."""
        if self._stopped:
            return False
        if self._lock.locked():
            self.skipped_ticks += 1
            logger.debug("%s poll still in flight; skipping tick", self.name)
            return False
        async with self._lock:
            return await self._poll()

    async def refresh(self) -> bool:
        """Out-of-band poll, run as soon as any in-flight poll completes."""
        if self._stopped:
            return False
        async with self._lock:
            return await self._poll()

    async def _poll(self) -> bool:
        try:
            value = await self._fetch()
        except POLL_ERRORS as e:
            if self._stopped:
                logger.debug("%s poll failed after stop: %s", self.name, e)
                return False
            self.failure_count += 1
            self.last_error = str(e)
            logger.warning("Failed to fetch %s: %s", self.name, e)
            return False
        if self._stopped:
            logger.debug("%s poll finished after stop; discarding result", self.name)
            return False
        self._value = value
        self.last_error = None
        self.last_success = time.monotonic()
        self._notify(value)
        return True

    def _notify(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception:
                logger.exception("%s listener failed", self.name)

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self.tick(), name=f"poll-{self.name}-tick")
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)

    async def _run_loop(self) -> None:
        # Ticks run as their own tasks so a slow fetch makes later ticks skip
        # rather than pile up behind it.
        self._spawn_tick()
        if not self._interval or self._interval <= 0:
            return
        while True:
            await asyncio.sleep(self._interval)
            self._spawn_tick()


class StatusPoller(PeriodicPoller[StatusSnapshot]):
    """Publishes the server-wide ``/status`` snapshot."""

    def __init__(self, api: ControlApiClient, interval: float):
        self._api = api
        super().__init__("status", self._fetch_status, interval)

    @property
    def snapshot(self) -> StatusSnapshot | None:
        return self.value

    async def _fetch_status(self) -> StatusSnapshot:
        return StatusSnapshot.model_validate(await self._api.get_status())


class PresetCatalog(PeriodicPoller[list[Preset]]):
    """Preset reference data. Fetched once at start unless given an interval."""

    def __init__(self, api: ControlApiClient, interval: float | None = None):
        self._api = api
        super().__init__("presets", self._fetch_presets, interval)

    @property
    def presets(self) -> list[Preset]:
        return self.value or []

    def get(self, preset_id: str) -> Preset | None:
        for preset in self.presets:
            if preset.id == preset_id:
                return preset
        return None

    async def _fetch_presets(self) -> list[Preset]:
        return PresetList.model_validate(await self._api.get_presets()).presets
