"""apps/gateway 测试配置 -- Echo 运行时 + httpx AsyncClient

app.state.runtime 手动注入（绕过 lifespan），worker 池默认不启动，
需要真实处理的测试自行调用 runtime.start()。
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from quillflow.engine import EngineConfig
from quillflow.gateway.services.queue_runtime import QueueRuntime
from quillflow.provider import EchoGenerator


@pytest.fixture
def engine_config() -> EngineConfig:
    """零延迟引擎配置"""
    return EngineConfig(
        server_backoff_base_s=0,
        queue_server_backoff_base_s=0,
        overload_backoff_base_s=0,
        inter_chunk_delay_s=0,
        first_chunk_delay_s=0,
    )


@pytest_asyncio.fixture
async def runtime(engine_config: EngineConfig) -> AsyncGenerator[QueueRuntime, None]:
    rt = QueueRuntime(
        EchoGenerator(words_per_call=1000, latency_s=0),
        engine_config=engine_config,
    )
    yield rt
    await rt.shutdown()


@pytest_asyncio.fixture
async def test_app(runtime: QueueRuntime):
    """创建测试用 FastAPI app"""
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from quillflow.gateway.main import create_app

    app = create_app()
    app.state.runtime = runtime

    yield app

    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac
