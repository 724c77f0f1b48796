import pytest

from llama_manager.config import load_client_config, resolve_settings, settings


def test_missing_config_file_means_defaults(tmp_path):
    assert load_client_config(str(tmp_path / "absent.yaml")) == {}
    assert load_client_config("") == {}
    assert resolve_settings({}) is settings


def test_yaml_overrides_api_and_intervals(tmp_path):
    path = tmp_path / "client.yaml"
    path.write_text(
        "manager:\n"
        "  api_base_url: http://gpu-box:3001/api\n"
        "  status_interval_seconds: 1.5\n"
        "  models_interval_seconds: 30\n"
    )
    resolved = resolve_settings(load_client_config(str(path)))
    assert resolved.api_base_url == "http://gpu-box:3001/api"
    assert resolved.status_interval_seconds == 1.5
    assert resolved.models_interval_seconds == 30
    assert resolved.log_level == settings.log_level


def test_unknown_keys_are_rejected():
    with pytest.raises(KeyError):
        resolve_settings({"manager": {"poll_everything": True}})


def test_non_mapping_config_is_rejected(tmp_path):
    path = tmp_path / "client.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_client_config(str(path))


def test_env_prefix(monkeypatch):
    from llama_manager.config import Settings

    monkeypatch.setenv("LLAMA_MANAGER_STATUS_INTERVAL_SECONDS", "5")
    assert Settings().status_interval_seconds == 5.0
