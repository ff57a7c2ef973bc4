"""FastAPI 应用主文件

app 创建 + lifespan 管理：队列运行时初始化/关闭 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from quillflow.engine import load_engine_config
from quillflow.provider import load_provider_config

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import cancel, health, queue, stream, tasks
from .services.queue_runtime import build_runtime

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时组装队列运行时，关闭时取消进行中的任务"""
    provider_config = load_provider_config()
    engine_config = load_engine_config()
    app.state.provider_config = provider_config

    runtime = build_runtime(provider_config, engine_config)
    app.state.runtime = runtime
    await runtime.start()

    yield

    await runtime.shutdown()
    log.info("gateway_shutdown")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="QuillFlow Gateway",
        version="0.1.0",
        description="QuillFlow 长文本生成队列 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire()

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(cancel.router, tags=["tasks"])
    app.include_router(queue.router, tags=["queue"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
