"""QueueRuntime -- 网关持有的队列运行时

把 Generator、QuotaGate、EventHub、ProgressReporter、TaskQueue 与 WorkerPool
组装在一起，由 lifespan 启动与关闭。
"""

import structlog
from quillflow.engine import (
    ChunkedGenerator,
    EngineConfig,
    EventHub,
    ProgressReporter,
    RetryExecutor,
    TaskQueue,
    WorkerPool,
)
from quillflow.provider import (
    Generator,
    LiteLLMClient,
    ProviderConfig,
    QuotaGate,
    build_generator,
    build_quota_gate,
)

log = structlog.get_logger()


class QueueRuntime:
    """队列运行时组件集合"""

    def __init__(
        self,
        generator: Generator,
        engine_config: EngineConfig | None = None,
        quota_gate: QuotaGate | None = None,
    ) -> None:
        self.engine_config = engine_config or EngineConfig()
        self.generator = generator
        self.hub = EventHub()
        self.reporter = ProgressReporter(self.hub)
        self.queue = TaskQueue(self.reporter)
        self.pool = WorkerPool(
            self.queue,
            ChunkedGenerator(
                generator,
                executor=RetryExecutor(self.engine_config.retry_policy(queue_mode=True)),
                config=self.engine_config,
            ),
            quota_gate=quota_gate,
            size=self.engine_config.worker_count,
            error_preview_length=self.engine_config.error_preview_length,
        )

    @property
    def litellm_client(self) -> LiteLLMClient | None:
        """LiteLLM 模式下的客户端（健康检查用），echo 模式为 None"""
        if isinstance(self.generator, LiteLLMClient):
            return self.generator
        return None

    async def start(self) -> None:
        """启动 worker；auto_start 时同时开始处理队列"""
        self.pool.start()
        if self.engine_config.auto_start:
            await self.queue.start()

    async def shutdown(self) -> None:
        """取消进行中的任务并停止 worker"""
        await self.queue.stop()
        await self.pool.shutdown()


def build_runtime(
    provider_config: ProviderConfig,
    engine_config: EngineConfig,
) -> QueueRuntime:
    """按配置构造运行时"""
    runtime = QueueRuntime(
        generator=build_generator(provider_config),
        engine_config=engine_config,
        quota_gate=build_quota_gate(provider_config),
    )
    log.info(
        "queue_runtime_initialized",
        llm_mode=provider_config.llm_mode,
        quota_mode=provider_config.quota_mode,
        worker_count=engine_config.worker_count,
    )
    return runtime
