"""集成测试共享 fixture

Mock litellm.acompletion()，让真实的 LiteLLMClient -> RetryExecutor ->
ChunkedGenerator -> WorkerPool -> TaskQueue -> 网关路由全链路运行。
"""

from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from quillflow.engine import EngineConfig
from quillflow.gateway.services.queue_runtime import QueueRuntime
from quillflow.provider import AllowAllQuotaGate, LiteLLMClient


def make_completion(content: str) -> MagicMock:
    """构造模拟的 litellm acompletion 响应"""
    resp = MagicMock()
    resp.choices = [MagicMock()]
    resp.choices[0].message.content = content
    resp.usage = MagicMock()
    resp.usage.prompt_tokens = 10
    resp.usage.completion_tokens = len(content.split())
    resp.usage.total_tokens = 10 + len(content.split())
    resp.model = "gpt-4o-mini"
    resp._hidden_params = {"custom_llm_provider": "openai"}
    return resp


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(
        server_backoff_base_s=0,
        queue_server_backoff_base_s=0,
        overload_backoff_base_s=0,
        inter_chunk_delay_s=0,
        first_chunk_delay_s=0,
    )


@pytest.fixture
def mock_acompletion():
    """替换 provider 模块中的 acompletion；测试通过 side_effect 编排响应"""
    with patch("quillflow.provider.client.acompletion", new_callable=AsyncMock) as mock:
        yield mock


@pytest.fixture
def completion_factory() -> Callable[[str], MagicMock]:
    return make_completion


@pytest.fixture
def build_runtime(engine_config: EngineConfig):
    """按需构造 LiteLLM 运行时（可替换 worker 数与配额闸门）"""

    def _build(worker_count: int = 1, quota_gate=None) -> QueueRuntime:
        return QueueRuntime(
            LiteLLMClient(proxy_base_url="http://mock-proxy:4000", proxy_api_key="test-key"),
            engine_config=engine_config.model_copy(update={"worker_count": worker_count}),
            quota_gate=quota_gate or AllowAllQuotaGate(),
        )

    return _build


@pytest_asyncio.fixture
async def make_client(build_runtime) -> AsyncGenerator[Callable, None]:
    """返回 async 工厂：(runtime, client)，运行时已启动"""
    from quillflow.gateway.main import create_app

    clients: list[tuple[QueueRuntime, AsyncClient]] = []

    async def _make(worker_count: int = 1, quota_gate=None) -> tuple[QueueRuntime, AsyncClient]:
        runtime = build_runtime(worker_count=worker_count, quota_gate=quota_gate)
        app = create_app()
        app.state.runtime = runtime
        await runtime.start()
        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append((runtime, client))
        return runtime, client

    yield _make

    for runtime, client in clients:
        await client.aclose()
        await runtime.shutdown()
