import pytest

from llama_manager.mode import (
    SERVER_HEALTHY,
    SERVER_STARTING,
    SERVER_STOPPED,
    is_preset_activatable,
    preset_views,
    resolve_mode,
    server_state,
)
from llama_manager.models import Preset, StatusSnapshot

from conftest import LLAMA_PRESET, QWEN_PRESET, make_status


def _snapshot(**overrides) -> StatusSnapshot:
    return StatusSnapshot.model_validate(make_status(**overrides))


def test_single_mode_exposes_active_preset():
    mode = resolve_mode(_snapshot(mode="single", currentPreset=QWEN_PRESET))
    assert mode.is_single_mode is True
    assert mode.active_preset.id == "qwen-coder"


@pytest.mark.parametrize("value", ["router", None, "", "Single", "multi"])
def test_anything_but_single_is_router_mode(value):
    assert resolve_mode(_snapshot(mode=value)).is_single_mode is False


def test_no_snapshot_is_router_mode():
    mode = resolve_mode(None)
    assert mode.is_single_mode is False
    assert mode.active_preset is None


def test_server_state():
    assert server_state(None) == SERVER_STOPPED
    assert server_state(_snapshot(llamaRunning=False, llamaHealthy=False)) == SERVER_STOPPED
    assert server_state(_snapshot(llamaRunning=True, llamaHealthy=False)) == SERVER_STARTING
    assert server_state(_snapshot()) == SERVER_HEALTHY


def test_only_active_preset_is_activatable_in_single_mode():
    snapshot = _snapshot(mode="single", currentPreset=QWEN_PRESET)
    assert is_preset_activatable(snapshot, "qwen-coder") is True
    assert is_preset_activatable(snapshot, "llama-chat") is False


def test_every_preset_is_activatable_in_router_mode():
    snapshot = _snapshot(mode="router")
    assert is_preset_activatable(snapshot, "llama-chat") is True
    assert is_preset_activatable(None, "llama-chat") is True


def test_preset_views_mark_active_and_starting():
    presets = [Preset.model_validate(QWEN_PRESET), Preset.model_validate(LLAMA_PRESET)]
    snapshot = _snapshot(mode="single", currentPreset=QWEN_PRESET, llamaHealthy=False)

    qwen, llama = preset_views(snapshot, presets)
    assert qwen.is_active and qwen.is_starting and qwen.is_activatable
    assert not llama.is_active and not llama.is_starting and not llama.is_activatable


def test_preset_views_in_router_mode():
    presets = [Preset.model_validate(QWEN_PRESET)]
    (view,) = preset_views(_snapshot(), presets)
    assert view.is_active is False
    assert view.is_activatable is True
