import asyncio
import copy
import json

import httpx
import pytest

from llama_manager.control_client import ControlApiClient
from llama_manager.state import ManagerState

BASE_URL = "http://manager.test/api"


def make_status(**overrides) -> dict:
    status = {
        "apiRunning": True,
        "llamaRunning": True,
        "llamaHealthy": True,
        "mode": "router",
        "currentPreset": None,
        "llamaPort": 8080,
        "downloads": {},
    }
    status.update(overrides)
    return status


QWEN_PRESET = {
    "id": "qwen-coder",
    "name": "Qwen Coder",
    "description": "Coding assistant",
    "repo": "Qwen/Qwen2.5-Coder-7B-Instruct-GGUF",
    "quantization": "Q4_K_M",
    "context": 32768,
}

LLAMA_PRESET = {
    "id": "llama-chat",
    "name": "Llama Chat",
    "description": "General chat",
    "repo": "bartowski/Meta-Llama-3-8B-Instruct-GGUF",
    "quantization": "Q5_K_M",
    "context": 8192,
}


class FakeManagerApi:
    """In-memory stand-in for the manager control API, served over MockTransport."""

    def __init__(self):
        self.status = make_status()
        self.models = {
            "serverModels": [],
            "localModels": [
                {"name": "qwen2.5-7b", "path": "/models/qwen2.5-7b.gguf", "size": 4_683_000_000},
            ],
            "modelsDir": "/models",
        }
        self.presets = {"presets": [QWEN_PRESET, LLAMA_PRESET]}
        self.search_results = {"results": []}
        self.repo_files: dict[str, dict] = {}
        self.requests: list[tuple[str, str]] = []
        self.bodies: list[tuple[str, dict]] = []
        self.failing: set[str] = set()
        self.holds: dict[str, asyncio.Event] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p == path)

    def hold(self, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.holds[path] = event
        return event

    async def wait_for_request(self, method: str, path: str, count: int = 1) -> None:
        for _ in range(1000):
            if self.count(method, path) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"{method} {path} was never requested")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.requests.append((request.method, path))
        if request.content:
            self.bodies.append((path, json.loads(request.content)))
        hold = self.holds.get(path)
        if hold is not None:
            await hold.wait()
        if path in self.failing:
            return httpx.Response(500, json={"error": "boom"})

        if request.method == "GET":
            if path == "/status":
                return httpx.Response(200, json=copy.deepcopy(self.status))
            if path == "/models":
                return httpx.Response(200, json=copy.deepcopy(self.models))
            if path == "/presets":
                return httpx.Response(200, json=copy.deepcopy(self.presets))
            if path == "/search":
                return httpx.Response(200, json=copy.deepcopy(self.search_results))
            if path.startswith("/repo/") and path.endswith("/files"):
                repo_id = path[len("/repo/"):-len("/files")]
                return httpx.Response(200, json=self.repo_files.get(repo_id, {"quantizations": []}))
        if request.method == "POST":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def fake_api():
    return FakeManagerApi()


@pytest.fixture
async def api_client(fake_api):
    client = ControlApiClient(BASE_URL, transport=fake_api.transport)
    await client.start()
    yield client
    await client.stop()


@pytest.fixture
def state(api_client):
    return ManagerState.create(api_client, status_interval=3.0, models_interval=10.0)
