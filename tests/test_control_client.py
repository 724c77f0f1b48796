import pytest

from llama_manager.control_client import ControlApiClient
from llama_manager.errors import ClientNotStarted, ControlApiError

from conftest import BASE_URL


async def test_post_json_sends_body_only_when_given(fake_api, api_client):
    await api_client.post_json("/server/start")
    assert await api_client.post_json("/models/load", {"model": "qwen2.5-7b"}) == {"success": True}
    assert fake_api.requests == [("POST", "/server/start"), ("POST", "/models/load")]
    assert fake_api.bodies == [("/models/load", {"model": "qwen2.5-7b"})]


async def test_post_json_raises_on_error_status(fake_api, api_client):
    fake_api.failing.add("/pull")
    with pytest.raises(ControlApiError):
        await api_client.pull("org/llama-3-8b", "Q4_K_M")


async def test_requests_before_start_and_after_stop_raise(fake_api):
    client = ControlApiClient(BASE_URL, transport=fake_api.transport)
    with pytest.raises(ClientNotStarted):
        await client.get_status()

    await client.start()
    assert (await client.get_status())["llamaHealthy"] is True
    await client.stop()
    with pytest.raises(ClientNotStarted):
        await client.post_json("/server/stop")
    assert fake_api.count("POST", "/server/stop") == 0
