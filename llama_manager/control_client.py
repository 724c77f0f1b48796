import logging
from typing import Any
from urllib.parse import quote

import httpx

from .errors import ClientNotStarted, ControlApiError

logger = logging.getLogger(__name__)


class ControlApiClient:
    """Async HTTP client for the llama manager control API.

    No retries and no circuit breaking: every caller in this package already
    treats a failed request as "try again on the next tick or click".
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def start(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def stop(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        """Return initialized client or raise a clear runtime error."""
        if self._client is None:
            raise ClientNotStarted("Control API client is not started")
        return self._client

    async def request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        resp = await self._require_client().request(method, path, **kwargs)
        if resp.status_code >= 400:
            detail = resp.text.strip()[:200]
            raise ControlApiError(method, path, resp.status_code, detail)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ControlApiError(method, path, None, "response is not JSON") from e

    async def get_json(self, path: str, **kwargs) -> dict[str, Any]:
        payload = await self.request("GET", path, **kwargs)
        if not isinstance(payload, dict):
            raise ControlApiError("GET", path, None, "expected a JSON object")
        return payload

    async def post_json(self, path: str, json_body: dict[str, Any] | None = None) -> Any:
        if json_body is None:
            return await self.request("POST", path)
        return await self.request("POST", path, json=json_body)

    # --- Reads ---

    async def get_status(self) -> dict[str, Any]:
        return await self.get_json("/status")

    async def get_models(self) -> dict[str, Any]:
        return await self.get_json("/models")

    async def get_presets(self) -> dict[str, Any]:
        return await self.get_json("/presets")

    async def search(self, query: str) -> dict[str, Any]:
        return await self.get_json("/search", params={"query": query})

    async def list_repo_files(self, author: str, model: str) -> dict[str, Any]:
        path = f"/repo/{quote(author, safe='')}/{quote(model, safe='')}/files"
        return await self.get_json(path)

    # --- Mutations ---

    async def start_server(self) -> Any:
        return await self.post_json("/server/start")

    async def stop_server(self) -> Any:
        return await self.post_json("/server/stop")

    async def activate_preset(self, preset_id: str) -> Any:
        return await self.post_json(f"/presets/{quote(preset_id, safe='')}/activate")

    async def load_model(self, name: str) -> Any:
        return await self.post_json("/models/load", {"model": name})

    async def unload_model(self, name: str) -> Any:
        return await self.post_json("/models/unload", {"model": name})

    async def pull(self, repo: str, quantization: str) -> Any:
        return await self.post_json("/pull", {"repo": repo, "quantization": quantization})
