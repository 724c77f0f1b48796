"""Model inventory poller and per-model load status."""

from __future__ import annotations

from .control_client import ControlApiClient
from .models import MODEL_LOADED, MODEL_UNLOADED, LocalModel, ModelInventory, ServerModel
from .pollers import PeriodicPoller


def find_server_model(server_models: list[ServerModel], name: str) -> ServerModel | None:
    """Match a local model name against what the server has loaded.

    Server and filesystem alias the same file differently, so any of an exact
    ``id`` match, an exact ``model`` match or ``name`` appearing inside the
    ``id`` counts.
    """
    if not name:
        return None
    for server_model in server_models:
        if server_model.id == name or server_model.model == name:
            return server_model
        if server_model.id and name in server_model.id:
            return server_model
    return None


def model_status(server_models: list[ServerModel], name: str) -> str:
    if find_server_model(server_models, name) is None:
        return MODEL_UNLOADED
    return MODEL_LOADED


class ModelRegistryReconciler(PeriodicPoller[ModelInventory]):
    """Publishes ``/models`` as one unit: server models, local models, models dir."""

    def __init__(self, api: ControlApiClient, interval: float):
        self._api = api
        super().__init__("models", self._fetch_inventory, interval)

    @property
    def inventory(self) -> ModelInventory:
        return self.value or ModelInventory()

    @property
    def server_models(self) -> list[ServerModel]:
        return self.inventory.server_models

    @property
    def local_models(self) -> list[LocalModel]:
        return self.inventory.local_models

    @property
    def models_dir(self) -> str:
        return self.inventory.models_dir

    def model_status(self, name: str) -> str:
        return model_status(self.server_models, name)

    def server_model_status(self, name: str) -> str:
        """Status as the server reports it (``loading``, ...), ``unloaded`` when absent."""
        server_model = find_server_model(self.server_models, name)
        if server_model is None:
            return MODEL_UNLOADED
        return server_model.status or MODEL_LOADED

    async def _fetch_inventory(self) -> ModelInventory:
        return ModelInventory.model_validate(await self._api.get_models())
