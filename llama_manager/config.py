from pathlib import Path

import yaml
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:3001/api"
    config_path: str = ""
    status_interval_seconds: float = 3.0
    models_interval_seconds: float = 10.0
    request_timeout_seconds: float | None = None
    log_level: str = "INFO"
    view_feed_queue_size: int = 50
    view_feed_keepalive_seconds: float = 15.0

    model_config = {"env_prefix": "LLAMA_MANAGER_"}


settings = Settings()

_OVERRIDABLE_KEYS = {
    "api_base_url",
    "status_interval_seconds",
    "models_interval_seconds",
    "request_timeout_seconds",
}


def load_client_config(path: str | None = None) -> dict:
    """Load optional YAML overrides for the control API and poll cadence."""
    raw_path = settings.config_path if path is None else path
    if not raw_path:
        return {}
    config_path = Path(raw_path)
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Client config must be a mapping: {config_path}")
    return data


def resolve_settings(config: dict | None = None) -> Settings:
    """Return settings with the ``manager`` section of a YAML config applied."""
    section = (config or {}).get("manager") or {}
    if not isinstance(section, dict):
        raise ValueError("Client config 'manager' section must be a mapping")
    unknown = set(section) - _OVERRIDABLE_KEYS
    if unknown:
        raise KeyError(f"Unknown client config keys: {', '.join(sorted(unknown))}")
    if not section:
        return settings
    return settings.model_copy(update=section)
