"""Records exchanged with the llama manager control API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MODE_SINGLE = "single"
MODE_ROUTER = "router"

DOWNLOAD_STARTING = "starting"
DOWNLOAD_DOWNLOADING = "downloading"
DOWNLOAD_COMPLETED = "completed"
DOWNLOAD_FAILED = "failed"

MODEL_LOADED = "loaded"
MODEL_UNLOADED = "unloaded"

DEFAULT_LLAMA_PORT = 8080


class _Record(BaseModel):
    """Immutable record parsed from camelCase JSON, tolerant of missing fields."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _none_to_empty_str(value: Any) -> Any:
    return "" if value is None else value


# --- Status ---


class Preset(_Record):
    id: str
    name: str = ""
    description: str = ""
    repo: str = ""
    quantization: str = ""
    context: int = 0

    @field_validator("name", "description", "repo", "quantization", mode="before")
    @classmethod
    def _empty_strings(cls, value: Any) -> Any:
        return _none_to_empty_str(value)

    @field_validator("context", mode="before")
    @classmethod
    def _context_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class DownloadRecord(_Record):
    status: str = DOWNLOAD_STARTING
    progress: int = 0
    error: str | None = None

    @field_validator("progress", mode="before")
    @classmethod
    def _progress_as_int(cls, value: Any) -> Any:
        # Server may report fractional percentages; displayed as whole numbers.
        if value is None:
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def is_active(self) -> bool:
        return self.status in (DOWNLOAD_STARTING, DOWNLOAD_DOWNLOADING)


class StatusSnapshot(_Record):
    api_running: bool = False
    llama_running: bool = False
    llama_healthy: bool = False
    mode: str | None = None
    current_preset: Preset | None = None
    llama_port: int = DEFAULT_LLAMA_PORT
    downloads: dict[str, DownloadRecord] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _healthy_implies_running(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        healthy = data.get("llamaHealthy", data.get("llama_healthy"))
        if healthy:
            data = dict(data)
            data["llamaRunning"] = True
            data.pop("llama_running", None)
        return data

    @field_validator("downloads", mode="before")
    @classmethod
    def _downloads_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("llama_port", mode="before")
    @classmethod
    def _port_default(cls, value: Any) -> Any:
        return value or DEFAULT_LLAMA_PORT

    @field_validator("api_running", "llama_running", "llama_healthy", mode="before")
    @classmethod
    def _flag_default(cls, value: Any) -> Any:
        return bool(value)


# --- Models ---


class ServerModel(_Record):
    id: str = ""
    model: str | None = None
    status: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, value: Any) -> Any:
        # llama-router reports status as {"value": "loaded", ...}
        if isinstance(value, dict):
            inner = value.get("value")
            return inner if isinstance(inner, str) else None
        return value


class LocalModel(_Record):
    name: str
    path: str
    size: int = 0

    @field_validator("size", mode="before")
    @classmethod
    def _size_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class ModelInventory(_Record):
    server_models: list[ServerModel] = Field(default_factory=list)
    local_models: list[LocalModel] = Field(default_factory=list)
    models_dir: str = ""

    @field_validator("server_models", "local_models", mode="before")
    @classmethod
    def _lists_default(cls, value: Any) -> Any:
        return _none_to_empty_list(value)

    @field_validator("models_dir", mode="before")
    @classmethod
    def _dir_default(cls, value: Any) -> Any:
        return _none_to_empty_str(value)


class PresetList(_Record):
    presets: list[Preset] = Field(default_factory=list)

    @field_validator("presets", mode="before")
    @classmethod
    def _presets_default(cls, value: Any) -> Any:
        return _none_to_empty_list(value)


# --- Repository browsing ---


class RepositorySearchResult(_Record):
    id: str
    downloads: int = 0

    @field_validator("downloads", mode="before")
    @classmethod
    def _downloads_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class SearchResults(_Record):
    results: list[RepositorySearchResult] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _results_default(cls, value: Any) -> Any:
        return _none_to_empty_list(value)


class Quantization(_Record):
    quantization: str
    total_size: int = 0
    is_split: bool = False
    files: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("files", mode="before")
    @classmethod
    def _files_default(cls, value: Any) -> Any:
        return _none_to_empty_list(value)

    @field_validator("total_size", mode="before")
    @classmethod
    def _size_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class RepositoryFiles(_Record):
    quantizations: list[Quantization] = Field(default_factory=list)

    @field_validator("quantizations", mode="before")
    @classmethod
    def _quantizations_default(cls, value: Any) -> Any:
        return _none_to_empty_list(value)


# --- Request bodies ---


class ModelActionRequest(BaseModel):
    model: str = Field(..., min_length=1)


class PullRequest(BaseModel):
    repo: str = Field(..., min_length=1)
    quantization: str = Field(..., min_length=1)


class SearchRequest(BaseModel):
    query: str = ""


class QuantizationChoice(BaseModel):
    quantization: str = Field(..., min_length=1)
