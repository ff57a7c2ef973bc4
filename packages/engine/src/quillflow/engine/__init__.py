"""QuillFlow Engine -- 分块生成流水线与任务队列

packages/engine 的公开接口导出。
"""

from .cancellation import CancelToken, cancellable_sleep, run_cancellable
from .chunking import ChunkedGenerator, GenerationOutcome, count_units
from .config import EngineConfig, load_engine_config
from .errors import (
    GenerationError,
    InvalidTransitionError,
    QueueDisabledError,
    QueueError,
    TaskCanceledError,
    TaskNotFoundError,
    TaskProcessingError,
)
from .events import EventHub
from .progress import ProgressReporter
from .queue import TaskQueue
from .retry import RetryExecutor, RetryPolicy
from .strategies import (
    ChunkPlan,
    PromptStrategy,
    RewritePromptStrategy,
    StoryPromptStrategy,
    StrategyRegistry,
    default_registry,
)
from .worker import WorkerPool

__all__ = [
    # 取消
    "CancelToken",
    "cancellable_sleep",
    "run_cancellable",
    # 重试
    "RetryExecutor",
    "RetryPolicy",
    # 分块生成
    "ChunkedGenerator",
    "GenerationOutcome",
    "ChunkPlan",
    "count_units",
    "PromptStrategy",
    "StoryPromptStrategy",
    "RewritePromptStrategy",
    "StrategyRegistry",
    "default_registry",
    # 队列
    "TaskQueue",
    "WorkerPool",
    "ProgressReporter",
    "EventHub",
    # 配置
    "EngineConfig",
    "load_engine_config",
    # 异常
    "TaskCanceledError",
    "GenerationError",
    "QueueError",
    "TaskNotFoundError",
    "TaskProcessingError",
    "InvalidTransitionError",
    "QueueDisabledError",
]
