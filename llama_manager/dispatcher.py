"""Mutating actions against the manager API.

Every action is two-phase: send the mutation, then force a refresh of the
poller whose snapshot it affects. The action key stays busy until both
phases finish, so a repeated trigger for the same target is dropped.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .action_gate import ROUTER_KEY, SERVER_KEY, download_key
from .control_client import ControlApiClient
from .mode import SERVER_HEALTHY, is_preset_activatable, server_state
from .pollers import POLL_ERRORS, PeriodicPoller
from .state import ManagerState

logger = logging.getLogger(__name__)


class ActionOutcome(str, enum.Enum):
    SKIPPED = "skipped"
    REJECTED = "rejected"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ActionDispatcher:
    def __init__(self, api: ControlApiClient, state: ManagerState):
        self._api = api
        self._state = state

    async def _run(
        self,
        key: str,
        label: str,
        mutate: Callable[[], Awaitable[Any]],
        refresh: PeriodicPoller,
    ) -> ActionOutcome:
        gate = self._state.gate
        if not gate.try_acquire(key):
            logger.debug("%s ignored: '%s' already has an action in flight", label, key)
            return ActionOutcome.SKIPPED
        try:
            try:
                await mutate()
            except POLL_ERRORS as e:
                logger.warning("%s failed for '%s': %s", label, key, e)
                outcome = ActionOutcome.FAILED
            else:
                logger.info("%s accepted for '%s'", label, key)
                outcome = ActionOutcome.SUCCEEDED
            await refresh.refresh()
        finally:
            gate.release(key)
        return outcome

    async def start_server(self) -> ActionOutcome:
        return await self._run(SERVER_KEY, "Start server", self._api.start_server, self._state.status)

    async def stop_server(self) -> ActionOutcome:
        return await self._run(SERVER_KEY, "Stop server", self._api.stop_server, self._state.status)

    async def switch_to_router_mode(self) -> ActionOutcome:
        # Router mode is what the server boots into without a preset.
        return await self._run(ROUTER_KEY, "Switch to router mode", self._api.start_server, self._state.status)

    async def activate_preset(self, preset_id: str) -> ActionOutcome:
        if not is_preset_activatable(self._state.status.snapshot, preset_id):
            logger.info("Preset '%s' not activatable while another preset holds single mode", preset_id)
            return ActionOutcome.REJECTED
        return await self._run(
            preset_id,
            "Activate preset",
            lambda: self._api.activate_preset(preset_id),
            self._state.status,
        )

    async def load_model(self, name: str) -> ActionOutcome:
        if not self._server_ready("Load model", name):
            return ActionOutcome.REJECTED
        return await self._run(name, "Load model", lambda: self._api.load_model(name), self._state.registry)

    async def unload_model(self, name: str) -> ActionOutcome:
        return await self._run(name, "Unload model", lambda: self._api.unload_model(name), self._state.registry)

    async def trigger_download(self, repo: str, quantization: str) -> ActionOutcome:
        return await self._run(
            download_key(repo, quantization),
            "Download",
            lambda: self._api.pull(repo, quantization),
            self._state.status,
        )

    def _server_ready(self, label: str, name: str) -> bool:
        if server_state(self._state.status.snapshot) == SERVER_HEALTHY:
            return True
        logger.info("%s '%s' rejected: llama server is not healthy", label, name)
        return False
