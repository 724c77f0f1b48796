"""Per-key busy flags that keep mutating actions from overlapping."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

SERVER_KEY = "server"
ROUTER_KEY = "router"


class ActionGate:
    """Non-blocking per-key exclusion.

    A rejected ``try_acquire`` is a no-op for the caller; nothing is queued
    and nobody waits. Runs on a single event loop, so the check-and-set in
    ``try_acquire`` has no suspension point and needs no lock.

    Listeners are called with the key after every acquire and release.
    """

    def __init__(self) -> None:
        self._busy: dict[str, bool] = {}
        self._listeners: list[Callable[[str], None]] = []

    def add_listener(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def try_acquire(self, key: str) -> bool:
        if self._busy.get(key):
            return False
        self._busy[key] = True
        self._notify(key)
        return True

    def release(self, key: str) -> None:
        if self._busy.pop(key, None) is not None:
            self._notify(key)

    def is_busy(self, key: str) -> bool:
        return self._busy.get(key, False)

    def busy(self) -> dict[str, bool]:
        """Copy of the busy map, for presentation. Only held keys appear."""
        return dict(self._busy)

    def _notify(self, key: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(key)
            except Exception:
                logger.exception("Action gate listener failed for %s", key)


def download_key(repo: str, quantization: str) -> str:
    return f"pull:{repo}:{quantization}"
