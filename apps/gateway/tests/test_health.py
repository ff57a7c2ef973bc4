"""健康检查测试

测试内容：
1. GET /health 返回 200 + ok
2. GET /ready worker 运行时返回 200，未运行时 503
3. profile=llm：echo 模式跳过，LiteLLM 模式探测 Proxy
"""

from unittest.mock import AsyncMock, patch

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from quillflow.gateway.services.queue_runtime import QueueRuntime
from quillflow.provider import LiteLLMClient


class TestHealthCheck:
    """Liveness / Readiness"""

    async def test_health_returns_200(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"

    async def test_ready_with_running_workers(self, client: AsyncClient, runtime):
        await runtime.start()

        resp = await client.get("/ready")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ready"
        assert data["profile"] == "core"
        assert data["checks"]["workers"] == 1
        assert data["checks"]["queue"] == "processing"
        assert data["checks"]["litellm_proxy"] == "skipped"

    async def test_ready_without_workers_503(self, client: AsyncClient):
        resp = await client.get("/ready")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "not_ready"
        assert data["checks"]["workers"] == "stopped"

    async def test_ready_reports_paused_queue(self, client: AsyncClient, runtime):
        await runtime.start()
        await runtime.queue.pause()

        resp = await client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["queue"] == "paused"

    async def test_ready_llm_profile_echo_skipped(self, client: AsyncClient, runtime):
        await runtime.start()

        resp = await client.get("/ready", params={"profile": "llm"})
        assert resp.status_code == 200
        assert resp.json()["checks"]["litellm_proxy"] == "skipped"


@pytest_asyncio.fixture
async def litellm_runtime(engine_config):
    rt = QueueRuntime(
        LiteLLMClient(proxy_base_url="http://proxy.test:4000", proxy_api_key="sk-test"),
        engine_config=engine_config,
    )
    rt.pool.start()
    yield rt
    await rt.shutdown()


@pytest_asyncio.fixture
async def litellm_client(litellm_runtime) -> AsyncClient:
    from quillflow.gateway.main import create_app

    app = create_app()
    app.state.runtime = litellm_runtime
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


class TestReadyLiteLLMProfile:
    """LiteLLM 模式下的 Proxy 探测"""

    async def test_proxy_healthy(self, litellm_client: AsyncClient):
        with patch.object(LiteLLMClient, "health_check", AsyncMock(return_value=True)):
            resp = await litellm_client.get("/ready", params={"profile": "full"})
        assert resp.status_code == 200
        assert resp.json()["checks"]["litellm_proxy"] == "ok"

    async def test_proxy_unreachable_503(self, litellm_client: AsyncClient):
        with patch.object(LiteLLMClient, "health_check", AsyncMock(return_value=False)):
            resp = await litellm_client.get("/ready", params={"profile": "llm"})
        assert resp.status_code == 503
        assert resp.json()["checks"]["litellm_proxy"] == "unreachable"

    async def test_core_profile_skips_proxy_check(self, litellm_client: AsyncClient):
        check = AsyncMock(return_value=False)
        with patch.object(LiteLLMClient, "health_check", check):
            resp = await litellm_client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["checks"]["litellm_proxy"] == "skipped"
        check.assert_not_awaited()
