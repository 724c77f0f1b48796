"""Owned state shared by the reconciliation core."""

from __future__ import annotations

from dataclasses import dataclass, field

from .action_gate import ActionGate
from .control_client import ControlApiClient
from .pollers import PresetCatalog, StatusPoller
from .registry import ModelRegistryReconciler


@dataclass
class ManagerState:
    """Each snapshot has one writer: its poller. The gate is written by the dispatcher."""

    status: StatusPoller
    registry: ModelRegistryReconciler
    presets: PresetCatalog
    gate: ActionGate = field(default_factory=ActionGate)

    @classmethod
    def create(
        cls,
        api: ControlApiClient,
        *,
        status_interval: float,
        models_interval: float,
    ) -> ManagerState:
        return cls(
            status=StatusPoller(api, status_interval),
            registry=ModelRegistryReconciler(api, models_interval),
            presets=PresetCatalog(api),
        )

    @property
    def pollers(self) -> tuple:
        return (self.status, self.registry, self.presets)
