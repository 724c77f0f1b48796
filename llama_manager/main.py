"""Local JSON/SSE surface over the llama manager client core."""

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .config import Settings, load_client_config, resolve_settings
from .manager import ManagerClient
from .models import (
    ModelActionRequest,
    PullRequest,
    QuantizationChoice,
    RepositorySearchResult,
    SearchRequest,
)
from .view_feed import as_sse

logger = logging.getLogger(__name__)


def get_manager(request: Request) -> ManagerClient:
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        raise RuntimeError("Manager client is not initialized")
    return manager


def create_app(
    config: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: resolve config, start pollers. Shutdown: stop them."""
        resolved = config or resolve_settings(load_client_config())
        logging.basicConfig(
            level=getattr(logging, resolved.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        manager = ManagerClient(resolved, transport=transport)
        app.state.manager = manager
        app.state.keepalive_seconds = max(1.0, float(resolved.view_feed_keepalive_seconds))
        await manager.start()
        logger.info("Llama manager client started")

        yield

        await manager.stop()
        app.state.manager = None
        logger.info("Llama manager client stopped")

    app = FastAPI(title="Llama Manager Client", version="1.0.0", lifespan=lifespan)

    # --- Error handling ---

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, httpx.ConnectError):
            return JSONResponse(status_code=503, content={"error": "Manager API unavailable", "detail": str(exc)})
        if isinstance(exc, (httpx.ReadTimeout, httpx.WriteTimeout)):
            return JSONResponse(status_code=504, content={"error": "Manager API timeout", "detail": str(exc)})
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # --- Health & view ---

    @app.get("/health")
    async def health(request: Request):
        manager = get_manager(request)
        status = manager.state.status
        return {
            "status": "ok" if status.snapshot is not None else "syncing",
            "lastError": status.last_error,
            "feed": manager.feed.stats(),
        }

    @app.get("/view")
    async def view(request: Request):
        return get_manager(request).build_view()

    @app.get("/events/view", include_in_schema=False)
    async def view_events(request: Request):
        manager = get_manager(request)
        keepalive_seconds = request.app.state.keepalive_seconds
        subscriber = manager.feed.subscribe()

        async def event_stream():
            try:
                yield as_sse("view", manager.build_view())
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        event = await asyncio.wait_for(subscriber.get(), timeout=keepalive_seconds)
                    except asyncio.TimeoutError:
                        yield ": keepalive\n\n"
                        continue
                    yield as_sse("view", event)
            finally:
                manager.feed.unsubscribe(subscriber)

        headers = {
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        }
        return StreamingResponse(event_stream(), media_type="text/event-stream", headers=headers)

    # --- Actions ---

    @app.post("/actions/server/start")
    async def start_server(request: Request):
        outcome = await get_manager(request).dispatcher.start_server()
        return {"outcome": outcome.value}

    @app.post("/actions/server/stop")
    async def stop_server(request: Request):
        outcome = await get_manager(request).dispatcher.stop_server()
        return {"outcome": outcome.value}

    @app.post("/actions/router")
    async def switch_to_router_mode(request: Request):
        outcome = await get_manager(request).dispatcher.switch_to_router_mode()
        return {"outcome": outcome.value}

    @app.post("/actions/presets/{preset_id}/activate")
    async def activate_preset(preset_id: str, request: Request):
        manager = get_manager(request)
        if manager.state.presets.value is not None and manager.state.presets.get(preset_id) is None:
            raise HTTPException(status_code=404, detail=f"Preset '{preset_id}' not found")
        outcome = await manager.dispatcher.activate_preset(preset_id)
        return {"outcome": outcome.value}

    @app.post("/actions/models/load")
    async def load_model(body: ModelActionRequest, request: Request):
        outcome = await get_manager(request).dispatcher.load_model(body.model)
        return {"outcome": outcome.value}

    @app.post("/actions/models/unload")
    async def unload_model(body: ModelActionRequest, request: Request):
        outcome = await get_manager(request).dispatcher.unload_model(body.model)
        return {"outcome": outcome.value}

    @app.post("/actions/pull")
    async def pull(body: PullRequest, request: Request):
        outcome = await get_manager(request).dispatcher.trigger_download(body.repo, body.quantization)
        return {"outcome": outcome.value}

    # --- Repository browsing ---

    def _browse_payload(manager: ManagerClient) -> dict:
        payload = manager.browse.to_dict()
        selected = manager.browse.selected
        for item in payload["quantizations"]:
            item["busy"] = bool(selected) and manager.is_download_busy(selected.id, item["quantization"])
        return payload

    @app.get("/browse")
    async def browse(request: Request):
        return _browse_payload(get_manager(request))

    @app.post("/browse/search")
    async def browse_search(body: SearchRequest, request: Request):
        manager = get_manager(request)
        await manager.browse.submit(body.query)
        return _browse_payload(manager)

    @app.post("/browse/select")
    async def browse_select(body: RepositorySearchResult, request: Request):
        manager = get_manager(request)
        await manager.browse.select(body)
        return _browse_payload(manager)

    @app.post("/browse/back")
    async def browse_back(request: Request):
        manager = get_manager(request)
        manager.browse.back()
        return _browse_payload(manager)

    @app.post("/browse/download")
    async def browse_download(body: QuantizationChoice, request: Request):
        manager = get_manager(request)
        outcome = await manager.browse.download(body.quantization)
        payload = _browse_payload(manager)
        payload["outcome"] = outcome.value
        return payload

    return app


app = create_app()
