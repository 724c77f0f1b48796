"""Composition root: owns the API client, the pollers and the combined view."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .action_gate import download_key
from .browse import RepositoryBrowseFlow
from .config import Settings
from .control_client import ControlApiClient
from .dispatcher import ActionDispatcher
from .downloads import track_downloads
from .mode import preset_views, resolve_mode, server_state
from .state import ManagerState
from .view_feed import ViewFeed

logger = logging.getLogger(__name__)


class ManagerClient:
    def __init__(self, config: Settings, *, transport: httpx.AsyncBaseTransport | None = None):
        self.api = ControlApiClient(
            config.api_base_url,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )
        self.state = ManagerState.create(
            self.api,
            status_interval=config.status_interval_seconds,
            models_interval=config.models_interval_seconds,
        )
        self.dispatcher = ActionDispatcher(self.api, self.state)
        self.browse = RepositoryBrowseFlow(self.api, self.dispatcher)
        self.feed = ViewFeed(subscriber_queue_size=config.view_feed_queue_size)
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        await self.api.start()
        # Busy flags change outside any poll, so gate changes republish too.
        self.state.gate.add_listener(self._on_update)
        for poller in self.state.pollers:
            poller.add_listener(self._on_update)
            await poller.start()
        self._started = True
        logger.info("Polling manager API at %s", self.api.base_url)

    async def stop(self) -> None:
        if not self._started:
            return
        for poller in self.state.pollers:
            await poller.stop()
            poller.remove_listener(self._on_update)
        self.state.gate.remove_listener(self._on_update)
        self.feed.close()
        await self.api.stop()
        self._started = False
        logger.info("Stopped polling manager API")

    async def __aenter__(self) -> ManagerClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _on_update(self, _value: Any) -> None:
        self.feed.publish(self.build_view())

    def build_view(self) -> dict[str, Any]:
        """Read-only view of everything the presentation layer renders."""
        snapshot = self.state.status.snapshot
        registry = self.state.registry
        gate = self.state.gate
        mode = resolve_mode(snapshot)

        presets = []
        for view in preset_views(snapshot, self.state.presets.presets):
            item = view.preset.model_dump(by_alias=True)
            item.update(
                isActive=view.is_active,
                isStarting=view.is_starting,
                isActivatable=view.is_activatable,
                busy=gate.is_busy(view.preset.id),
            )
            presets.append(item)

        # Individual model management only exists in router mode.
        server_models: list[dict] = []
        local_models: list[dict] = []
        if not mode.is_single_mode:
            for model in registry.server_models:
                item = model.model_dump(by_alias=True)
                item["busy"] = gate.is_busy(model.id)
                server_models.append(item)
            for model in registry.local_models:
                item = model.model_dump(by_alias=True)
                item["status"] = registry.model_status(model.name)
                item["busy"] = gate.is_busy(model.name)
                local_models.append(item)

        downloads = []
        for entry in track_downloads(snapshot):
            item = {"id": entry.id}
            item.update(entry.record.model_dump(by_alias=True))
            downloads.append(item)

        return {
            "server": {
                "state": server_state(snapshot),
                "apiRunning": bool(snapshot and snapshot.api_running),
                "llamaRunning": bool(snapshot and snapshot.llama_running),
                "llamaHealthy": bool(snapshot and snapshot.llama_healthy),
                "llamaPort": snapshot.llama_port if snapshot else None,
            },
            "mode": {
                "isSingleMode": mode.is_single_mode,
                "activePreset": mode.active_preset.model_dump(by_alias=True) if mode.active_preset else None,
            },
            "presets": presets,
            "serverModels": server_models,
            "localModels": local_models,
            "modelsDir": registry.models_dir,
            "downloads": downloads,
            "busy": gate.busy(),
            "synced": {
                "status": snapshot is not None,
                "models": registry.value is not None,
                "presets": self.state.presets.value is not None,
            },
        }

    def is_download_busy(self, repo: str, quantization: str) -> bool:
        return self.state.gate.is_busy(download_key(repo, quantization))
