"""Operating mode and preset availability, derived from the status snapshot."""

from __future__ import annotations

from dataclasses import dataclass

from .models import MODE_SINGLE, Preset, StatusSnapshot

SERVER_HEALTHY = "healthy"
SERVER_STARTING = "starting"
SERVER_STOPPED = "stopped"


@dataclass(frozen=True)
class ModeView:
    is_single_mode: bool
    active_preset: Preset | None


@dataclass(frozen=True)
class PresetView:
    preset: Preset
    is_active: bool
    is_starting: bool
    is_activatable: bool


def resolve_mode(snapshot: StatusSnapshot | None) -> ModeView:
    """Anything other than exactly ``single`` is router mode."""
    if snapshot is None:
        return ModeView(is_single_mode=False, active_preset=None)
    return ModeView(
        is_single_mode=snapshot.mode == MODE_SINGLE,
        active_preset=snapshot.current_preset,
    )


def server_state(snapshot: StatusSnapshot | None) -> str:
    if snapshot is None:
        return SERVER_STOPPED
    if snapshot.llama_healthy:
        return SERVER_HEALTHY
    if snapshot.llama_running:
        return SERVER_STARTING
    return SERVER_STOPPED


def is_preset_activatable(snapshot: StatusSnapshot | None, preset_id: str) -> bool:
    mode = resolve_mode(snapshot)
    if not mode.is_single_mode:
        return True
    return mode.active_preset is not None and mode.active_preset.id == preset_id


def preset_views(snapshot: StatusSnapshot | None, presets: list[Preset]) -> list[PresetView]:
    mode = resolve_mode(snapshot)
    active_id = mode.active_preset.id if mode.active_preset else None
    starting = server_state(snapshot) == SERVER_STARTING
    views = []
    for preset in presets:
        is_active = preset.id == active_id
        views.append(
            PresetView(
                preset=preset,
                is_active=is_active,
                is_starting=is_active and starting,
                is_activatable=not mode.is_single_mode or is_active,
            )
        )
    return views
